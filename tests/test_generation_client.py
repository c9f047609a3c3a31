"""
Image generation client tests against a mocked HTTP transport.
"""
import asyncio
import json

import httpx
import pytest

from imagestudio.exceptions import (
    UpstreamConfigError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from imagestudio.services.generation_service import (
    ImageGenerationClient,
    build_prompt,
    extract_image,
)

API_BASE = "https://generativelanguage.test/v1beta/models"


def image_response(data="aW1hZ2U="):
    return {
        "candidates": [
            {"content": {"parts": [{"text": "Here you go"}, {"inlineData": {"mimeType": "image/png", "data": data}}]}}
        ]
    }


def make_client(handler, api_key="test-key", timeout=5.0):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageGenerationClient(
        api_key=api_key,
        model="gemini-test",
        api_base=API_BASE,
        timeout=timeout,
        http_client=http_client,
    )


def test_build_prompt_applies_style():
    assert build_prompt("  a red fox ") == "a red fox"
    assert build_prompt("a red fox", "watercolor") == "in watercolor style: a red fox"
    assert build_prompt("a red fox", "   ") == "a red fox"


def test_extract_image_accepts_snake_case_parts():
    data = {"candidates": [{"content": {"parts": [{"inline_data": {"data": "abc"}}]}}]}
    assert extract_image(data) == "abc"


@pytest.mark.parametrize("data, message", [
    ({}, "No response generated from the model."),
    ({"candidates": [{"content": {"parts": []}}]}, "Empty response from the model."),
    ({"candidates": [{"content": {"parts": [{"text": "sorry"}]}}]}, "No image was generated. Try a different prompt."),
])
def test_extract_image_errors(data, message):
    with pytest.raises(UpstreamError, match=message):
        extract_image(data)


async def test_generate_sends_prompt_and_reference_image():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("x-goog-api-key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=image_response("b3V0"))

    client = make_client(handler)
    try:
        image = await client.generate("a lighthouse", image="cmVm", style="oil painting")
    finally:
        await client.aclose()

    assert image == "b3V0"
    assert seen["url"] == f"{API_BASE}/gemini-test:generateContent"
    assert seen["api_key"] == "test-key"
    parts = seen["body"]["contents"][0]["parts"]
    assert parts[0] == {"text": "in oil painting style: a lighthouse"}
    assert parts[1]["inlineData"]["data"] == "cmVm"
    assert seen["body"]["generationConfig"]["responseModalities"] == ["TEXT", "IMAGE"]


@pytest.mark.parametrize("api_key", [None, "", "your_api_key_here"])
async def test_generate_requires_api_key(api_key):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=image_response())

    client = make_client(handler, api_key=api_key)
    try:
        with pytest.raises(UpstreamConfigError):
            await client.generate("a lighthouse")
    finally:
        await client.aclose()

    assert calls == []


@pytest.mark.parametrize("status_code, error_type", [
    (429, UpstreamRateLimitError),
    (401, UpstreamConfigError),
    (403, UpstreamConfigError),
])
async def test_generate_maps_status_codes(status_code, error_type):
    client = make_client(lambda request: httpx.Response(status_code, json={}))
    try:
        with pytest.raises(error_type):
            await client.generate("a lighthouse")
    finally:
        await client.aclose()


async def test_generate_surfaces_upstream_error_message():
    body = {"error": {"message": "Model overloaded"}}
    client = make_client(lambda request: httpx.Response(503, json=body))
    try:
        with pytest.raises(UpstreamError, match="Model overloaded"):
            await client.generate("a lighthouse")
    finally:
        await client.aclose()


async def test_generate_times_out():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json=image_response())

    client = make_client(handler, timeout=0.05)
    try:
        with pytest.raises(UpstreamTimeoutError, match="Request timed out"):
            await client.generate("a lighthouse")
    finally:
        await client.aclose()


async def test_generate_treats_transport_timeout_as_timeout():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    client = make_client(handler)
    try:
        with pytest.raises(UpstreamTimeoutError):
            await client.generate("a lighthouse")
    finally:
        await client.aclose()
