"""Unit tests for the conversion service client using httpx.MockTransport."""

import json

import httpx
import pytest

from mathdoc.core.exceptions import ConversionError, ConversionErrorKind
from mathdoc.pipeline.clients.mathpix_client import MathpixClient, kind_for_status
from mathdoc.pipeline.models.dto import JobStatus

BASE_URL = "https://converter.test/v3"


class FakeArtifactWriter:
    def __init__(self):
        self.writes = []

    async def put(self, owner_id, file_name, markup):
        self.writes.append((owner_id, file_name, markup))
        return f"users/{owner_id}/mmd/{file_name}"


def make_client(handler, artifact_store=None) -> MathpixClient:
    return MathpixClient(
        BASE_URL,
        "app-id",
        "app-key",
        artifact_store=artifact_store,
        transport=httpx.MockTransport(handler),
    )


class TestStatusMapping:
    @pytest.mark.parametrize(
        "status,kind",
        [
            (400, ConversionErrorKind.INVALID_CONTENT),
            (401, ConversionErrorKind.INVALID_CREDENTIALS),
            (413, ConversionErrorKind.FILE_TOO_LARGE),
            (415, ConversionErrorKind.UNSUPPORTED_FORMAT),
            (429, ConversionErrorKind.RATE_LIMIT_EXCEEDED),
            (500, ConversionErrorKind.PROCESSING_ERROR),
            (502, ConversionErrorKind.PROCESSING_ERROR),
            (503, ConversionErrorKind.PROCESSING_ERROR),
            (504, ConversionErrorKind.PROCESSING_ERROR),
            (404, ConversionErrorKind.NETWORK_ERROR),
            (418, ConversionErrorKind.NETWORK_ERROR),
        ],
    )
    def test_kind_for_status(self, status, kind):
        assert kind_for_status(status) is kind

    @pytest.mark.asyncio
    async def test_non_2xx_raises_typed_error_with_body(self):
        def handler(request):
            return httpx.Response(429, text="Too many requests")

        async with make_client(handler) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.submit_conversion("https://files.test/a.pdf")

        assert exc_info.value.kind is ConversionErrorKind.RATE_LIMIT_EXCEEDED
        assert exc_info.value.details == "Too many requests"

    @pytest.mark.asyncio
    async def test_unlisted_status_reports_code(self):
        def handler(request):
            return httpx.Response(404)

        async with make_client(handler) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.poll_status("job-1")

        assert exc_info.value.kind is ConversionErrorKind.NETWORK_ERROR
        assert "404" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.recognize_image("https://files.test/a.png")

        assert exc_info.value.kind is ConversionErrorKind.NETWORK_ERROR


class TestSubmitConversion:
    @pytest.mark.asyncio
    async def test_submit_sends_url_and_options(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"pdf_id": "job-42"})

        async with make_client(handler) as client:
            job = await client.submit_conversion("https://files.test/a.pdf")

        assert job.job_id == "job-42"
        assert job.status is JobStatus.PROCESSING
        assert job.source_url == "https://files.test/a.pdf"
        assert seen["path"] == "/v3/pdf"
        assert seen["headers"]["app_id"] == "app-id"
        assert seen["headers"]["app_key"] == "app-key"
        assert seen["body"]["url"] == "https://files.test/a.pdf"
        options = json.loads(seen["body"]["options_json"])
        assert options["conversion_formats"] == ["mmd"]

    @pytest.mark.asyncio
    async def test_missing_job_id_is_invalid_content(self):
        def handler(request):
            return httpx.Response(200, json={"error": "could not read"})

        async with make_client(handler) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.submit_conversion("https://files.test/a.pdf")

        assert exc_info.value.kind is ConversionErrorKind.INVALID_CONTENT
        assert exc_info.value.message == "No PDF ID received from conversion service"

    @pytest.mark.asyncio
    async def test_malformed_json_is_processing_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        async with make_client(handler) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.submit_conversion("https://files.test/a.pdf")

        assert exc_info.value.kind is ConversionErrorKind.PROCESSING_ERROR

    @pytest.mark.asyncio
    async def test_non_object_json_is_processing_error(self):
        def handler(request):
            return httpx.Response(200, json=["job-42"])

        async with make_client(handler) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.submit_conversion("https://files.test/a.pdf")

        assert exc_info.value.kind is ConversionErrorKind.PROCESSING_ERROR


class TestPollStatus:
    @pytest.mark.asyncio
    async def test_poll_returns_status(self):
        def handler(request):
            assert request.url.path == "/v3/pdf/job-1"
            return httpx.Response(200, json={"status": "split", "percent_done": 40})

        async with make_client(handler) as client:
            status = await client.poll_status("job-1")

        assert status.status == "split"
        assert status.percent_done == 40
        assert JobStatus.from_remote(status.status) is JobStatus.PROCESSING


class TestDownloadArtifact:
    @pytest.mark.asyncio
    async def test_download_persists_markup(self):
        writer = FakeArtifactWriter()

        def handler(request):
            assert request.url.path == "/v3/pdf/job-1.mmd"
            return httpx.Response(200, text="# Notes\n$x$")

        async with make_client(handler, artifact_store=writer) as client:
            markup = await client.download_artifact("job-1", "u1", "calc101.pdf")

        assert markup == "# Notes\n$x$"
        assert writer.writes == [("u1", "calc101.pdf", "# Notes\n$x$")]

    @pytest.mark.asyncio
    async def test_whitespace_body_is_empty_response(self):
        writer = FakeArtifactWriter()

        def handler(request):
            return httpx.Response(200, text="  \n ")

        async with make_client(handler, artifact_store=writer) as client:
            with pytest.raises(ConversionError) as exc_info:
                await client.download_artifact("job-1", "u1", "calc101.pdf")

        assert exc_info.value.kind is ConversionErrorKind.EMPTY_RESPONSE
        assert writer.writes == []


class TestRecognizeImage:
    @pytest.mark.asyncio
    async def test_recognize_sends_src(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"text": "x", "latex_styled": "x^2", "confidence": 0.93}
            )

        async with make_client(handler) as client:
            result = await client.recognize_image("https://files.test/a.png")

        assert seen["path"] == "/v3/text"
        assert seen["body"]["src"] == "https://files.test/a.png"
        assert "latex_styled" in seen["body"]["formats"]
        assert result.latex_styled == "x^2"
        assert result.confidence == 0.93


class TestCredentials:
    def test_has_credentials(self):
        assert MathpixClient(BASE_URL, "id", "key").has_credentials
        assert not MathpixClient(BASE_URL, "", "key").has_credentials
        assert not MathpixClient(BASE_URL, "id", "").has_credentials
