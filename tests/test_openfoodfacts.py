"""Tests for the Open Food Facts client (mocked transport)."""

import httpx
import pytest

from blindlabel.extraction.allergens import AllergenProfile, CommonAllergen
from blindlabel.sources.openfoodfacts import (
    MAX_INGREDIENTS,
    OpenFoodFactsClient,
    format_nutrient,
)

PROFILE = AllergenProfile(
    common=(CommonAllergen.MILK, CommonAllergen.PEANUTS),
    custom=("Kiwi",),
)

PRODUCT = {
    "product_name": "",
    "product_name_en": "Milk Chocolate",
    "ingredients_text": "Sugar, cocoa butter, whole milk powder (milk), soy lecithin, "
    "artificial flavor, aspartame",
    "serving_size": "25 g",
    "nutriments": {
        "energy-kcal_100g": 535.4,
        "fat_100g": 29.7,
        "saturated-fat_100g": 0.46,
        "sugars_100g": 0.05,
        "proteins_100g": "7.6",
        "sodium_100g": 0.125,
    },
    "allergens_tags": ["en:milk", "en:tree-nuts"],
    "allergens_from_ingredients": "milk, soy",
}


def _client(handler) -> OpenFoodFactsClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenFoodFactsClient(base_url="https://off.test/api/v2/product", client=http)


class TestFormatNutrient:
    @pytest.mark.parametrize(
        "value, unit, expected",
        [(12.7, "g", "12g"), (1.0, "g", "1g"), (0.46, "g", "0.5g"),
         (0.1, "g", "0.1g"), (0.05, "g", "<0.1g"), (0, "mg", "<0.1mg")],
    )
    def test_format(self, value, unit, expected):
        assert format_nutrient(value, unit) == expected


class TestParseProduct:
    def test_name_fallbacks(self):
        assert OpenFoodFactsClient.parse_product(PRODUCT, PROFILE).product_name == (
            "Milk Chocolate"
        )
        assert OpenFoodFactsClient.parse_product({}, PROFILE).product_name == (
            "Unknown Product"
        )

    def test_ingredients(self):
        result = OpenFoodFactsClient.parse_product(PRODUCT, PROFILE)
        assert result.ingredients == [
            "Sugar",
            "cocoa butter",
            "whole milk powder",
            "soy lecithin",
            "artificial flavor",
            "aspartame",
        ]
        assert result.raw_text == PRODUCT["ingredients_text"]

    def test_ingredients_capped(self):
        text = ", ".join(f"item{i}" for i in range(40))
        assert len(OpenFoodFactsClient.parse_ingredients(text)) == MAX_INGREDIENTS

    def test_nutrition(self):
        n = OpenFoodFactsClient.parse_nutrition(PRODUCT)
        assert n.serving_size == "25 g"
        assert n.calories == "535kcal"
        assert n.total_fat == "29g"
        assert n.saturated_fat == "0.5g"
        assert n.sugars == "<0.1g"
        assert n.protein == "7g"
        assert n.sodium == "125mg"
        assert n.fiber is None

    def test_no_nutriments(self):
        assert OpenFoodFactsClient.parse_nutrition({}).is_empty()

    def test_allergens(self):
        assert OpenFoodFactsClient.parse_allergens(PRODUCT) == [
            "milk",
            "tree nuts",
            "soy",
        ]

    def test_allergen_warnings_follow_profile(self):
        result = OpenFoodFactsClient.parse_product(PRODUCT, PROFILE)
        assert result.allergen_warnings == ["Contains Milk"]

    def test_harmful(self):
        result = OpenFoodFactsClient.parse_product(PRODUCT, PROFILE)
        assert result.harmful_ingredients == [
            "aspartame: controversial artificial sweetener",
        ]


class TestLookup:
    @pytest.mark.asyncio
    async def test_found(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"status": 1, "product": PRODUCT})

        client = _client(handler)
        record = await client.lookup("3017620422003", PROFILE)

        assert seen["url"] == "https://off.test/api/v2/product/3017620422003.json"
        assert record.product_name == "Milk Chocolate"
        assert record.detected_allergens == ("Milk",)
        assert record.major_ingredients == record.ingredients[:5]

    @pytest.mark.asyncio
    async def test_user_agent_header(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["ua"] = request.headers["User-Agent"]
            return httpx.Response(200, json={"status": 0})

        http = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            headers={"User-Agent": "BlindLabel/1.0 (Python; blindlabel)"},
        )
        client = OpenFoodFactsClient(client=http)
        await client.lookup("123", PROFILE)
        assert seen["ua"] == "BlindLabel/1.0 (Python; blindlabel)"

    @pytest.mark.asyncio
    async def test_not_found_status(self):
        client = _client(lambda r: httpx.Response(200, json={"status": 0}))
        assert await client.lookup("0000", PROFILE) is None

    @pytest.mark.asyncio
    async def test_missing_product(self):
        client = _client(lambda r: httpx.Response(200, json={"status": 1}))
        assert await client.lookup("0000", PROFILE) is None

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = _client(lambda r: httpx.Response(404))
        assert await client.lookup("0000", PROFILE) is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = _client(lambda r: httpx.Response(200, text="<html>"))
        assert await client.lookup("0000", PROFILE) is None

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert await _client(handler).lookup("0000", PROFILE) is None

    @pytest.mark.asyncio
    async def test_blank_barcode(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert await _client(handler).lookup("  ", PROFILE) is None

    @pytest.mark.asyncio
    async def test_aclose_owned_client(self):
        client = OpenFoodFactsClient()
        await client.aclose()
        assert client._client.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        async with OpenFoodFactsClient(client=http):
            pass
        assert not http.is_closed
        await http.aclose()
