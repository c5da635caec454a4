"""Shared test fixtures."""

import socket
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from crane.adapters.citation import HtmlCitationAdapter
from crane.adapters.http import HttpFetcher, create_http_client
from crane.adapters.metadata import UnixrefAdapter, build_unixref
from crane.adapters.registry import DoiRegistryAdapter
from crane.adapters.storage import FilesystemAdapter
from crane.config import HttpConfig
from crane.domain.catalog import Catalog
from crane.domain.models import Contributor, Metadata
from crane.domain.services import AcquisitionService
from crane.ports.fetcher import FetcherPort
from crane.ports.registry import RegistryPort

PDF_BYTES = b"%PDF-1.4 test content"
MIRROR_URL = "https://mirror.test/"
REGISTRY_URL = "https://doi.org/"

UNIXREF_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<doi_records>
  <doi_record owner="10.1000" timestamp="2021-03-01">
    <crossref xmlns="http://www.crossref.org/xschema/1.0">
      <journal>
        <journal_metadata language="en">
          <full_title>Journal of Tests</full_title>
          <issn media_type="print">1234-5678</issn>
          <issn media_type="electronic">8765-4321</issn>
        </journal_metadata>
        <journal_article publication_type="full_text">
          <titles><title>On <i>Testing</i></title></titles>
          <contributors>
            <person_name contributor_role="author" sequence="first">
              <given_name>Jane</given_name>
              <surname>Smith</surname>
            </person_name>
            <person_name contributor_role="author" sequence="additional">
              <given_name>John</given_name>
              <surname>Doe</surname>
            </person_name>
          </contributors>
          <publication_date media_type="print">
            <month>03</month>
            <year>2021</year>
          </publication_date>
          <pages>
            <first_page>1</first_page>
            <last_page>10</last_page>
          </pages>
          <doi_data>
            <doi>10.1000/xyz123</doi>
            <resource>https://publisher.test/article/xyz123</resource>
          </doi_data>
        </journal_article>
      </journal>
    </crossref>
  </doi_record>
</doi_records>
"""


def public_resolver(host: str, port: int | None, type: int = 0) -> list:
    """Resolve every name to a public address without touching DNS."""
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", port or 443))]


class FakeWeb:
    """Canned responses keyed by URL, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, dict[str, str], bytes]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        content: bytes = b"",
        content_type: str = "text/html",
        status: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        headers = {"content-type": content_type, **(headers or {})}
        self.routes[str(httpx.URL(url))] = (status, headers, content)

    def add_pdf(self, url: str, headers: dict[str, str] | None = None) -> None:
        self.add(url, PDF_BYTES, "application/pdf", headers=headers)

    def redirect(self, url: str, location: str) -> None:
        self.routes[str(httpx.URL(url))] = (302, {"location": location}, b"")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not found")
        status, headers, content = route
        return httpx.Response(status, headers=headers, content=content)

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]

    def client(self) -> httpx.Client:
        return create_http_client(
            HttpConfig(), httpx.MockTransport(self.handler), resolver=public_resolver
        )


@pytest.fixture
def sample_metadata() -> Metadata:
    """Metadata matching UNIXREF_XML."""
    return Metadata(
        journal="Journal of Tests",
        issn="1234-5678",
        title="On Testing",
        contributors=(
            Contributor("Jane", "Smith", "author", "first"),
            Contributor("John", "Doe", "author", "additional"),
        ),
        pub_year="2021",
        pub_month="03",
        first_page="1",
        last_page="10",
        identifier="10.1000/xyz123",
        resource="https://publisher.test/article/xyz123",
    )


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """Empty catalog root."""
    path = tmp_path / "papers"
    path.mkdir()
    return path


@pytest.fixture
def write_paper(root: Path) -> Callable[..., Path]:
    """Put a PDF (and optionally its sidecar) on disk under the root."""

    def _write(category: str, name: str, metadata: Metadata | None = None) -> Path:
        directory = root.joinpath(*category.split("/"))
        directory.mkdir(parents=True, exist_ok=True)
        pdf = directory / f"{name}.pdf"
        pdf.write_bytes(PDF_BYTES)
        if metadata is not None:
            (directory / f"{name}.meta.xml").write_text(build_unixref(metadata))
        return pdf

    return _write


@pytest.fixture
def catalog(root: Path) -> Catalog:
    """Catalog over the temp root, loaded from disk."""
    catalog = Catalog(root, FilesystemAdapter(), UnixrefAdapter())
    catalog.populate()
    return catalog


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def client(web: FakeWeb) -> Iterator[httpx.Client]:
    """Guarded client whose inner transport is the fake web."""
    with web.client() as client:
        yield client


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def service(catalog: Catalog, client: httpx.Client, tmp_path: Path) -> AcquisitionService:
    """Acquisition service wired to real adapters over the fake web."""
    tmp_dir = tmp_path / "tmp"
    tmp_dir.mkdir()
    return AcquisitionService(
        catalog=catalog,
        fetcher=HttpFetcher(client, max_size=1_000_000),
        registry=DoiRegistryAdapter(client, REGISTRY_URL),
        citations=HtmlCitationAdapter(),
        sidecars=UnixrefAdapter(),
        mirror_url=MIRROR_URL,
        tmp_dir=tmp_dir,
        mirror_user_agent="MobileAgent/1.0",
    )


@pytest.fixture
def mock_fetcher() -> MagicMock:
    """Mock fetcher port."""
    return MagicMock(spec=FetcherPort)


@pytest.fixture
def mock_registry(sample_metadata: Metadata) -> MagicMock:
    """Mock registry port."""
    mock = MagicMock(spec=RegistryPort)
    mock.fetch_metadata.return_value = sample_metadata
    return mock
