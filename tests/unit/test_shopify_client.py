"""
Unit tests for the Shopify GraphQL client helpers.
"""

import asyncio
from unittest.mock import AsyncMock, patch
import pytest

from integrations.shopify import (
    TAGS_ADD_MUTATION,
    ShopifyClient,
    format_user_errors,
    to_product_gid,
)
from exceptions import ShopifyGraphQLError


class TestHelpers:

    @pytest.mark.parametrize("product_id,expected", [
        ("8801", "gid://shopify/Product/8801"),
        (8801, "gid://shopify/Product/8801"),
        ("gid://shopify/Product/8801", "gid://shopify/Product/8801"),
    ])
    def test_to_product_gid(self, product_id, expected):
        assert to_product_gid(product_id) == expected

    def test_format_user_errors(self):
        errors = [
            {"field": ["tags", "0"], "message": "is too long"},
            {"field": None, "message": "Product is locked"},
        ]
        assert format_user_errors(errors) == "tags.0: is too long | field: Product is locked"


class TestShopifyClient:

    def test_requires_credentials(self):
        with patch("integrations.shopify.settings") as mock_settings:
            mock_settings.shopify_shop_domain = None
            mock_settings.shopify_access_token = None
            mock_settings.shopify_api_version = "2024-01"

            with pytest.raises(ShopifyGraphQLError) as exc:
                ShopifyClient()

        assert exc.value.message == "Shopify is not configured"
        assert exc.value.status_code == 503

    def test_graphql_url(self):
        client = ShopifyClient("demo.myshopify.com", "shpat_test", "2024-01")
        assert client.graphql_url == "https://demo.myshopify.com/admin/api/2024-01/graphql.json"

    @pytest.mark.asyncio
    async def test_add_tags_returns_user_errors(self):
        client = ShopifyClient("demo.myshopify.com", "shpat_test", "2024-01")
        user_errors = [{"field": ["tags"], "message": "invalid"}]

        with patch.object(client, "graphql", AsyncMock(return_value={"tagsAdd": {"userErrors": user_errors}})) as graphql:
            result = await client.add_tags("8801", ["2022-toyota"])

        assert result == user_errors
        graphql.assert_awaited_once_with(
            TAGS_ADD_MUTATION,
            {"id": "gid://shopify/Product/8801", "tags": ["2022-toyota"]}
        )

    @pytest.mark.asyncio
    async def test_remove_tags_without_errors(self):
        client = ShopifyClient("demo.myshopify.com", "shpat_test", "2024-01")

        with patch.object(client, "graphql", AsyncMock(return_value={"tagsRemove": {"node": {"id": "x"}, "userErrors": []}})):
            assert await client.remove_tags("8801", ["old"]) == []

    @pytest.mark.asyncio
    async def test_timeout_raises_shopify_error_with_message(self):
        client = ShopifyClient("demo.myshopify.com", "shpat_test", "2024-01", timeout_seconds=5)

        with patch("integrations.shopify.aiohttp.ClientSession", side_effect=asyncio.TimeoutError()):
            with pytest.raises(ShopifyGraphQLError) as exc:
                await client.add_tags("8801", ["2022-toyota"])

        assert exc.value.message == "Shopify request timed out after 5s"
        assert exc.value.status_code == 503
