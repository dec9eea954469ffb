import httpx
import pytest

from app.config import settings
from app.services.elevenlabs_service import ElevenLabsService
from app.utils.errors import EnrichmentFailure


def _service(handler, monkeypatch, api_key="xi-test-key"):
    monkeypatch.setattr(settings, "ELEVENLABS_API_KEY", api_key)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ElevenLabsService(http=http)


class TestElevenLabsService:

    @pytest.mark.asyncio
    async def test_get_conversation(self, monkeypatch):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["key"] = request.headers.get("xi-api-key")
            return httpx.Response(200, json={"conversation_id": "conv_1", "analysis": {"transcript_summary": "ok"}})

        svc = _service(handler, monkeypatch)
        try:
            detail = await svc.get_conversation("conv_1")
        finally:
            await svc.aclose()

        assert detail["analysis"]["transcript_summary"] == "ok"
        assert seen["url"] == "https://api.elevenlabs.io/v1/convai/conversations/conv_1"
        assert seen["key"] == "xi-test-key"

    @pytest.mark.asyncio
    async def test_http_error_status(self, monkeypatch):
        svc = _service(lambda request: httpx.Response(404, json={"detail": "not found"}), monkeypatch)
        with pytest.raises(EnrichmentFailure, match="HTTP 404"):
            await svc.get_conversation("conv_missing")

    @pytest.mark.asyncio
    async def test_transport_error(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        svc = _service(handler, monkeypatch)
        with pytest.raises(EnrichmentFailure, match="ConnectError"):
            await svc.get_conversation("conv_1")

    @pytest.mark.asyncio
    async def test_non_json_body(self, monkeypatch):
        svc = _service(lambda request: httpx.Response(200, text="<html>"), monkeypatch)
        with pytest.raises(EnrichmentFailure, match="non-JSON"):
            await svc.get_conversation("conv_1")

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, monkeypatch):
        svc = _service(lambda request: httpx.Response(200, json=["a", "b"]), monkeypatch)
        with pytest.raises(EnrichmentFailure, match="unexpected shape"):
            await svc.get_conversation("conv_1")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        calls = []
        svc = _service(lambda request: calls.append(request), monkeypatch, api_key="")

        assert svc.can_enrich() is False
        with pytest.raises(EnrichmentFailure, match="ELEVENLABS_API_KEY"):
            await svc.get_conversation("conv_1")
        assert calls == []
