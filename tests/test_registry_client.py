"""Tests for the cache-aside registry client."""

import json
import logging
import threading
from unittest.mock import MagicMock

import pytest
import requests

from tfmodver.cache.disk_store import DiskStore
from tfmodver.errors import CacheWriteError, CancelledError, RegistryError, RegistryTimeoutError
from tfmodver.registry.client import RegistryClient, info_cache_key, versions_cache_key
from tfmodver.registry.models import Module

HOST = "registry.terraform.io"
VERSIONS_URL = "https://registry.terraform.io/v1/modules/hashicorp/consul/aws/versions"

VERSIONS_PAYLOAD = {
    "modules": [
        {
            "source": "hashicorp/consul/aws",
            "versions": [
                {"version": "0.1.0", "root": {"providers": [{"name": "aws", "version": ">= 3.0"}]}},
                {"version": "0.2.0"},
            ],
        }
    ]
}


def _response(status=200, payload=None, text=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {}
    resp.text = text if text is not None else json.dumps(payload)
    return resp


@pytest.fixture
def session():
    s = MagicMock(spec=requests.Session)
    s.get.return_value = _response(payload=VERSIONS_PAYLOAD)
    return s


@pytest.fixture
def store(tmp_path):
    s = DiskStore(str(tmp_path / "cache"), cleanup_interval=0)
    yield s
    s.close()


class TestFetchModuleVersions:
    """Test version list retrieval."""

    def test_success(self, session):
        client = RegistryClient(session=session, timeout=5)
        module = client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

        assert isinstance(module, Module)
        assert module.version_strings() == ["0.1.0", "0.2.0"]
        assert module.versions[0].root.providers[0].name == "aws"
        session.get.assert_called_once()
        args, kwargs = session.get.call_args
        assert args[0] == VERSIONS_URL
        assert kwargs["timeout"] == 5

    def test_result_is_cached(self, session, store):
        client = RegistryClient(store=store, session=session)
        client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")
        again = client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

        assert session.get.call_count == 1
        assert again.version_strings() == ["0.1.0", "0.2.0"]
        assert store.exists(versions_cache_key(HOST, "hashicorp", "consul", "aws"))

    def test_cache_hit_skips_network(self, session, store):
        store.set(
            versions_cache_key(HOST, "hashicorp", "consul", "aws"),
            {"source": "hashicorp/consul/aws", "versions": [{"version": "9.9.9"}]},
            60,
        )
        client = RegistryClient(store=store, session=session)
        module = client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

        assert module.version_strings() == ["9.9.9"]
        session.get.assert_not_called()

    def test_not_found_returns_none(self, session, store):
        session.get.return_value = _response(payload={"modules": []})
        client = RegistryClient(store=store, session=session)

        assert client.fetch_module_versions(HOST, "hashicorp", "missing", "aws") is None
        assert len(store) == 0

    def test_non_200(self, session):
        session.get.return_value = _response(status=500, text="oops")
        client = RegistryClient(session=session)

        with pytest.raises(RegistryError) as exc:
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")
        assert exc.value.status_code == 500

    def test_timeout(self, session):
        session.get.side_effect = requests.Timeout("slow")
        client = RegistryClient(session=session)

        with pytest.raises(RegistryTimeoutError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

    def test_timeout_is_a_registry_error(self, session):
        session.get.side_effect = requests.Timeout("slow")
        client = RegistryClient(session=session)

        with pytest.raises(RegistryError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

    def test_connection_error(self, session):
        session.get.side_effect = requests.ConnectionError("refused")
        client = RegistryClient(session=session)

        with pytest.raises(RegistryError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

    def test_invalid_json(self, session):
        session.get.return_value = _response(text="<html>")
        client = RegistryClient(session=session)

        with pytest.raises(RegistryError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

    def test_unexpected_shape(self, session):
        session.get.return_value = _response(payload={"modules": [{"versions": [{"version": 1}]}]})
        client = RegistryClient(session=session)

        with pytest.raises(RegistryError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

    def test_cancelled_before_request(self, session):
        cancel = threading.Event()
        cancel.set()
        client = RegistryClient(session=session)

        with pytest.raises(CancelledError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws", cancel_event=cancel)
        session.get.assert_not_called()

    def test_cancelled_while_in_flight(self, session, store):
        cancel = threading.Event()

        def get_then_cancel(url, **kwargs):
            cancel.set()
            return _response(payload=VERSIONS_PAYLOAD)

        session.get.side_effect = get_then_cancel
        client = RegistryClient(store=store, session=session)

        with pytest.raises(CancelledError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws", cancel_event=cancel)
        assert len(store) == 0

    def test_failure_after_cancel_is_reported_as_cancelled(self, session):
        cancel = threading.Event()

        def fail_after_cancel(url, **kwargs):
            cancel.set()
            raise requests.ConnectionError("aborted")

        session.get.side_effect = fail_after_cancel
        client = RegistryClient(session=session)

        with pytest.raises(CancelledError):
            client.fetch_module_versions(HOST, "hashicorp", "consul", "aws", cancel_event=cancel)

    def test_cache_write_failure_is_not_fatal(self, session, caplog):
        failing_store = MagicMock()
        failing_store.get.return_value = None
        failing_store.set.side_effect = CacheWriteError("disk full")
        client = RegistryClient(store=failing_store, session=session)

        with caplog.at_level(logging.WARNING):
            module = client.fetch_module_versions(HOST, "hashicorp", "consul", "aws")

        assert module.version_strings() == ["0.1.0", "0.2.0"]
        assert "Failed to cache" in caplog.text


class TestFetchModuleInfo:
    """Test per-version metadata enrichment."""

    @staticmethod
    def _module():
        return Module.from_dict(VERSIONS_PAYLOAD["modules"][0])

    def test_partial_failure_is_collected(self, session):
        def fake_get(url, **kwargs):
            if url.endswith("/0.1.0"):
                return _response(payload={"source": "https://github.com/x", "published_at": "2024-01-01T00:00:00Z"})
            return _response(status=503, text="")

        session.get.side_effect = fake_get
        client = RegistryClient(session=session)
        module = self._module()

        failures = client.fetch_module_info(HOST, "hashicorp", "consul", "aws", module)

        assert set(failures) == {"0.2.0"}
        assert isinstance(failures["0.2.0"], RegistryError)
        assert module.versions[0].module_info.published_at == "2024-01-01T00:00:00Z"
        assert module.versions[1].module_info is None

    def test_info_is_cached(self, session, store):
        session.get.return_value = _response(payload={"source": "s", "published_at": "p"})
        client = RegistryClient(store=store, session=session)

        client.fetch_module_info(HOST, "hashicorp", "consul", "aws", self._module())
        assert session.get.call_count == 2
        assert store.get(info_cache_key(HOST, "hashicorp", "consul", "aws", "0.1.0")) == {
            "source": "s",
            "published_at": "p",
        }

        module = self._module()
        assert client.fetch_module_info(HOST, "hashicorp", "consul", "aws", module) == {}
        assert session.get.call_count == 2
        assert module.versions[1].module_info.source == "s"

    def test_cancellation_propagates(self, session):
        cancel = threading.Event()
        cancel.set()
        client = RegistryClient(session=session)

        with pytest.raises(CancelledError):
            client.fetch_module_info(HOST, "hashicorp", "consul", "aws", self._module(), cancel_event=cancel)
