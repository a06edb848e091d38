"""
Tests for NetlifyService.
"""

import json

import httpx
import pytest

from sitegen.services.netlify_service import NetlifyService, NetlifyException, sha1_digest


def _service(handler, token="test-token"):
    client = httpx.Client(
        base_url="https://api.netlify.test/api/v1",
        transport=httpx.MockTransport(handler)
    )
    return NetlifyService(access_token=token, client=client)


class TestNetlifyService:
    """Tests for the typed Netlify client."""

    def test_not_configured(self):
        service = NetlifyService(access_token="")

        assert service.configured is False
        with pytest.raises(NetlifyException) as exc_info:
            service.create_site("my-site")
        assert exc_info.value.kind == "not_configured"

    def test_create_site(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json={
                "id": "site-1",
                "name": "my-site",
                "url": "http://my-site.netlify.app",
                "ssl_url": "https://my-site.netlify.app"
            })

        site = _service(handler).create_site("my-site")

        assert site.id == "site-1"
        assert site.public_url == "https://my-site.netlify.app"
        assert requests[0].method == "POST"
        assert requests[0].url.path == "/api/v1/sites"
        assert json.loads(requests[0].content) == {"name": "my-site"}

    def test_deploy_files_uploads_required_digests(self):
        html = "<html><body>Bakery</body></html>"
        digest = sha1_digest(html)
        uploads = []

        def handler(request):
            if request.method == "POST" and request.url.path.endswith("/sites/site-1/deploys"):
                assert json.loads(request.content) == {"files": {"/index.html": digest}}
                return httpx.Response(200, json={"id": "deploy-1", "state": "uploading", "required": [digest]})
            if request.method == "PUT":
                uploads.append((request.url.path, request.content, request.headers["content-type"]))
                return httpx.Response(200, json={"id": digest})
            return httpx.Response(404)

        deploy = _service(handler).deploy_files("site-1", {"/index.html": html})

        assert deploy.id == "deploy-1"
        assert deploy.required == [digest]
        assert uploads == [
            ("/api/v1/deploys/deploy-1/files/index.html", html.encode("utf-8"), "application/octet-stream")
        ]

    def test_deploy_files_nothing_required(self):
        def handler(request):
            if request.method == "PUT":
                raise AssertionError("no upload expected")
            return httpx.Response(200, json={"id": "deploy-1", "required": []})

        deploy = _service(handler).deploy_files("site-1", {"/index.html": "<p>cached</p>"})

        assert deploy.required == []

    def test_deploy_unknown_digest(self):
        def handler(request):
            return httpx.Response(200, json={"id": "deploy-1", "required": ["deadbeef"]})

        with pytest.raises(NetlifyException) as exc_info:
            _service(handler).deploy_files("site-1", {"/index.html": "<p>x</p>"})
        assert exc_info.value.kind == "invalid_response"

    def test_get_site_published_state(self):
        def handler(request):
            return httpx.Response(200, json={
                "id": "site-1",
                "url": "http://my-site.netlify.app",
                "published_deploy": {"state": "ready"}
            })

        site = _service(handler).get_site("site-1")

        assert site.published_state == "ready"
        assert site.public_url == "http://my-site.netlify.app"

    def test_get_site_without_published_deploy(self):
        def handler(request):
            return httpx.Response(200, json={"id": "site-1", "published_deploy": None})

        assert _service(handler).get_site("site-1").published_state is None

    def test_http_error(self):
        def handler(request):
            return httpx.Response(422, json={"message": "name already taken"})

        with pytest.raises(NetlifyException) as exc_info:
            _service(handler).create_site("taken")
        assert exc_info.value.kind == "http_error"
        assert exc_info.value.status_code == 422

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetlifyException) as exc_info:
            _service(handler).get_site("site-1")
        assert exc_info.value.kind == "network_error"

    def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>not json</html>")

        with pytest.raises(NetlifyException) as exc_info:
            _service(handler).get_site("site-1")
        assert exc_info.value.kind == "invalid_response"

    def test_site_missing_id(self):
        def handler(request):
            return httpx.Response(200, json={"name": "nameless"})

        with pytest.raises(NetlifyException) as exc_info:
            _service(handler).create_site()
        assert exc_info.value.kind == "invalid_response"

    def test_delete_site_treats_404_as_deleted(self):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(404)

        _service(handler).delete_site("gone")

    def test_delete_site_other_errors_raise(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        with pytest.raises(NetlifyException):
            _service(handler).delete_site("site-1")

    def test_delete_site_empty_body(self):
        def handler(request):
            return httpx.Response(204)

        _service(handler).delete_site("site-1")

    def test_sends_bearer_token(self):
        service = NetlifyService(access_token="secret-token")

        assert service.client.headers["Authorization"] == "Bearer secret-token"
        service.close()
