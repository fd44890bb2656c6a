import hashlib

import httpx
import pytest

from Utils.exceptions import GroupServiceError, VerifierUnavailableError
from Utils.payhip import PayhipVerifier, expected_signature, signature_matches
from Utils.roblox import RobloxGroupClient


def test_signature_is_sha256_of_api_key():
    assert expected_signature("secret") == hashlib.sha256(b"secret").hexdigest()
    assert signature_matches(hashlib.sha256(b"secret").hexdigest(), "secret")
    assert not signature_matches("nope", "secret")
    assert not signature_matches(None, "secret")
    assert not signature_matches("é", "secret")
    assert not signature_matches(12345, "secret")
    assert not signature_matches(expected_signature(""), "")


async def test_verify_sends_product_and_key():
    seen = {}

    def handler(request: httpx.Request):
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"valid": True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        verifier = PayhipVerifier(api_key="payhip-key", client=client)
        assert await verifier.verify("Blasters", "KEY-1") is True

    assert seen["params"] == {"product_key": "Blasters", "license_key": "KEY-1"}
    assert seen["auth"] == "payhip-key"


async def test_verify_invalid_key():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"valid": False}))
    async with httpx.AsyncClient(transport=transport) as client:
        assert await PayhipVerifier(api_key="k", client=client).verify("Blasters", "KEY-1") is False


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="down"),
    httpx.Response(200, text="not json"),
])
async def test_verify_failure_is_unavailable(response):
    transport = httpx.MockTransport(lambda request: response)
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(VerifierUnavailableError, match="try again later"):
            await PayhipVerifier(api_key="k", client=client).verify("Blasters", "KEY-1")


async def test_verify_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(VerifierUnavailableError):
            await PayhipVerifier(api_key="k", client=client).verify("Blasters", "KEY-1")


async def test_accept_join_request():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["api_key"] = request.headers.get("x-api-key")
        return httpx.Response(200, json={})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await RobloxGroupClient(client=client).accept_join_request("33752338", "111", "cloud-key")

    assert seen == {
        "method": "POST",
        "url": "https://groups.roblox.com/v2/groups/33752338/join-requests/users/111/accept",
        "api_key": "cloud-key",
    }


async def test_accept_join_request_rejected():
    transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"errors": []}))
    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(GroupServiceError) as excinfo:
            await RobloxGroupClient(client=client).accept_join_request("1", "111", "cloud-key")

    assert excinfo.value.context["status"] == 400
