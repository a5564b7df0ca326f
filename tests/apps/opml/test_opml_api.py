"""Tests for the OPML import/export endpoints."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest
from fastapi import status

pytestmark = pytest.mark.integration

OPML = b"""<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head><title>Reader export</title></head>
  <body>
    <outline text="Tech">
      <outline type="rss" text="Go Blog" xmlUrl="https://go.dev/blog/feed.atom"/>
      <outline type="rss" text="Python" xmlUrl="https://blog.python.org/feeds/posts/default"/>
    </outline>
    <outline type="rss" text="Loose" xmlUrl="http://example.com/loose.xml"/>
  </body>
</opml>"""


def _import(client, headers, data=OPML, content_type="text/x-opml"):
    return client.post(
        "/v1/import", content=data, headers={**headers, "Content-Type": content_type}
    )


class TestOPMLImport:
    """Verify OPML import creates categories and feeds without fetching.

    验证导入只写入分类与订阅，不触发抓取。
    """

    def test_import_creates_categories_and_feeds(self, client, auth_headers, feed_server):
        headers = auth_headers()

        response = _import(client, headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        categories = client.get("/v1/categories", headers=headers).json()["categories"]
        assert [c["name"] for c in categories] == ["tech"]
        feeds = client.get("/v1/feeds", headers=headers).json()["feeds"]
        assert {f["subscription"] for f in feeds} == {
            "https://go.dev/blog/feed.atom",
            "https://blog.python.org/feeds/posts/default",
            "http://example.com/loose.xml",
        }
        assert all(f["lastUpdated"] is None for f in feeds)
        assert feed_server.requests == []

    def test_nameless_group_is_imported_uncategorized(self, client, auth_headers):
        headers = auth_headers()
        data = b"""<opml version="2.0"><body>
          <outline text="  ">
            <outline type="rss" text="A" xmlUrl="http://example.com/a.xml"/>
          </outline>
        </body></opml>"""

        assert _import(client, headers, data).status_code == status.HTTP_204_NO_CONTENT

        assert client.get("/v1/categories", headers=headers).json()["categories"] == []
        uncategorized = client.get("/v1/categories/uncategorized/feeds", headers=headers).json()
        assert [f["subscription"] for f in uncategorized["feeds"]] == ["http://example.com/a.xml"]

    def test_import_twice_does_not_duplicate(self, client, auth_headers):
        headers = auth_headers()

        _import(client, headers)
        _import(client, headers, content_type="application/xml; charset=utf-8")

        assert len(client.get("/v1/feeds", headers=headers).json()["feeds"]) == 3
        assert len(client.get("/v1/categories", headers=headers).json()["categories"]) == 1

    def test_import_reuses_existing_category(self, client, auth_headers):
        headers = auth_headers()
        category = client.post("/v1/categories", json={"name": "TECH"}, headers=headers).json()

        _import(client, headers)

        feeds = client.get(f"/v1/categories/{category['id']}/feeds", headers=headers).json()
        assert len(feeds["feeds"]) == 2

    def test_unsupported_content_type(self, client, auth_headers):
        response = _import(client, auth_headers(), content_type="application/json")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_document(self, client, auth_headers):
        response = _import(client, auth_headers(), data=b"<opml><body>")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_empty_body_is_noop(self, client, auth_headers):
        headers = auth_headers()
        assert _import(client, headers, data=b"").status_code == status.HTTP_204_NO_CONTENT
        assert client.get("/v1/feeds", headers=headers).json()["feeds"] == []

    def test_requires_authentication(self, client):
        response = client.post(
            "/v1/import", content=OPML, headers={"Content-Type": "text/x-opml"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestOPMLExport:
    def test_export_lists_every_subscription(self, client, auth_headers):
        headers = auth_headers()
        _import(client, headers)

        response = client.get("/v1/export", headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("application/xml")
        body = ET.fromstring(response.content).find("body")
        category, loose = body.findall("outline")
        assert category.get("text") == "tech"
        assert len(category.findall("outline")) == 2
        assert loose.get("xmlUrl") == "http://example.com/loose.xml"

    def test_export_is_per_user(self, client, auth_headers):
        _import(client, auth_headers("alice", "alice-password"))

        response = client.get("/v1/export", headers=auth_headers("bob", "bob-password"))

        assert ET.fromstring(response.content).find("body").findall("outline") == []
