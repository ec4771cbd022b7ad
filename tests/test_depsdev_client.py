"""Tests for the deps.dev dependency graph client and its cache."""

import threading
import time
from unittest.mock import MagicMock, Mock

import pytest
import requests

from depsdev_enricher._transitive.cache import ResolutionCache, make_cache_key
from depsdev_enricher._transitive.cancellation import CancellationToken
from depsdev_enricher._transitive.client import (
    DEPSDEV_BASE_URL,
    DepsDevClient,
    new_maven_client,
    new_pypi_client,
)
from depsdev_enricher._transitive.models import DependencyGraph, Relation
from depsdev_enricher.exceptions import (
    DecodeError,
    NetworkError,
    OperationCancelledError,
    RemoteError,
)


def _response(status_code=200, payload=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload
    return response


class TestResolutionCache:
    """Tests for ResolutionCache."""

    def test_cache_key_format(self):
        assert make_cache_key("pypi", "requests", "2.31.0") == "pypi/requests@2.31.0"

    def test_put_and_get(self):
        cache = ResolutionCache()
        graph = DependencyGraph()
        cache.put("pypi/a@1", graph)
        assert cache.get("pypi/a@1") is graph
        assert "pypi/a@1" in cache
        assert len(cache) == 1

    def test_missing_key_returns_none(self):
        assert ResolutionCache().get("pypi/missing@1") is None

    def test_clear(self):
        cache = ResolutionCache()
        cache.put("k", DependencyGraph())
        cache.clear()
        assert len(cache) == 0

    def test_injected_lock_guards_reads_and_writes(self):
        lock = MagicMock()
        cache = ResolutionCache(lock=lock)
        cache.put("k", DependencyGraph())
        cache.get("k")
        assert lock.__enter__.call_count == 2
        assert lock.__exit__.call_count == 2


class TestDepsDevClient:
    """Tests for DepsDevClient.get_dependencies."""

    def test_factories_set_system(self):
        assert new_pypi_client().system == "pypi"
        assert new_maven_client().system == "maven"
        assert new_pypi_client().base_url == DEPSDEV_BASE_URL

    def test_url_escapes_name_and_version(self):
        client = DepsDevClient("maven", base_url="https://example.test/")
        url = client.build_url("org.apache:commons-io", "2.5")
        assert url == (
            "https://example.test/v3/systems/maven/packages/org.apache%3Acommons-io/versions/2.5:dependencies"
        )

    def test_successful_fetch(self, graph_payload):
        session = Mock()
        session.get.return_value = _response(
            payload=graph_payload("requests", "2.31.0", [("urllib3", "2.0.0", "DIRECT")])
        )
        client = DepsDevClient("pypi", session=session)

        graph = client.get_dependencies("requests", "2.31.0")

        assert len(graph.nodes) == 2
        assert graph.self_node.version_key.name == "requests"
        assert graph.nodes[1].relation is Relation.DIRECT
        assert len(graph.edges) == 1
        args, kwargs = session.get.call_args
        assert args[0].endswith("/v3/systems/pypi/packages/requests/versions/2.31.0:dependencies")
        assert kwargs["headers"] == {"Accept": "application/json"}

    def test_second_call_served_from_cache(self, graph_payload):
        session = Mock()
        session.get.return_value = _response(payload=graph_payload("requests", "2.31.0", []))
        client = DepsDevClient("pypi", session=session)

        first = client.get_dependencies("requests", "2.31.0")
        second = client.get_dependencies("requests", "2.31.0")

        assert first is second
        assert session.get.call_count == 1
        assert "pypi/requests@2.31.0" in client.cache

    def test_shared_cache_across_clients(self, graph_payload):
        cache = ResolutionCache()
        session = Mock()
        session.get.return_value = _response(payload=graph_payload("flask", "3.0.0", []))

        DepsDevClient("pypi", session=session, cache=cache).get_dependencies("flask", "3.0.0")
        DepsDevClient("pypi", session=session, cache=cache).get_dependencies("flask", "3.0.0")

        assert session.get.call_count == 1

    def test_non_200_raises_remote_error(self):
        session = Mock()
        session.get.return_value = _response(status_code=404, text='{"error":"not found"}')
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(RemoteError) as exc_info:
            client.get_dependencies("nope", "1.0")

        assert exc_info.value.status_code == 404
        assert "not found" in exc_info.value.body
        assert len(client.cache) == 0

    def test_connection_error_raises_network_error(self):
        session = Mock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(NetworkError):
            client.get_dependencies("requests", "2.31.0")
        assert len(client.cache) == 0

    def test_timeout_raises_network_error(self):
        session = Mock()
        session.get.side_effect = requests.exceptions.Timeout("slow")
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(NetworkError) as exc_info:
            client.get_dependencies("requests", "2.31.0")
        assert not isinstance(exc_info.value, OperationCancelledError)

    def test_invalid_json_raises_decode_error(self):
        session = Mock()
        response = _response()
        response.json.side_effect = ValueError("Expecting value")
        session.get.return_value = response
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(DecodeError):
            client.get_dependencies("requests", "2.31.0")
        assert len(client.cache) == 0

    def test_schema_mismatch_raises_decode_error(self):
        session = Mock()
        session.get.return_value = _response(payload={"nodes": [{"relation": "SELF"}]})
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(DecodeError):
            client.get_dependencies("requests", "2.31.0")

    def test_unknown_relation_raises_decode_error(self):
        session = Mock()
        session.get.return_value = _response(
            payload={"nodes": [{"versionKey": {"name": "a", "version": "1"}, "relation": "COUSIN"}]}
        )
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(DecodeError):
            client.get_dependencies("a", "1")

    @pytest.mark.parametrize("name,version", [("", "1.0"), ("requests", "")])
    def test_empty_name_or_version_rejected(self, name, version):
        session = Mock()
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(ValueError):
            client.get_dependencies(name, version)
        session.get.assert_not_called()

    def test_cancelled_token_prevents_request(self):
        session = Mock()
        client = DepsDevClient("pypi", session=session)
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            client.get_dependencies("requests", "2.31.0", token=token)
        session.get.assert_not_called()

    def test_cancellation_during_request_discards_response(self, graph_payload):
        token = CancellationToken()
        session = Mock()

        def _get(*args, **kwargs):
            token.cancel()
            return _response(payload=graph_payload("requests", "2.31.0", []))

        session.get.side_effect = _get
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(OperationCancelledError):
            client.get_dependencies("requests", "2.31.0", token=token)
        assert len(client.cache) == 0

    def test_token_deadline_bounds_request_timeout(self, graph_payload):
        session = Mock()
        session.get.return_value = _response(payload=graph_payload("requests", "2.31.0", []))
        client = DepsDevClient("pypi", session=session, timeout=30)

        client.get_dependencies("requests", "2.31.0", token=CancellationToken(timeout=5))

        assert session.get.call_args.kwargs["timeout"] <= 5

    def test_cached_graph_returned_without_token_check(self, graph_payload):
        session = Mock()
        session.get.return_value = _response(payload=graph_payload("requests", "2.31.0", []))
        client = DepsDevClient("pypi", session=session)
        client.get_dependencies("requests", "2.31.0")

        token = CancellationToken()
        token.cancel()
        assert client.get_dependencies("requests", "2.31.0", token=token) is not None

    def test_concurrent_misses_may_fetch_twice(self, graph_payload):
        barrier = threading.Barrier(2)
        session = Mock()

        def _get(*args, **kwargs):
            barrier.wait(timeout=5)
            return _response(payload=graph_payload("requests", "2.31.0", []))

        session.get.side_effect = _get
        client = DepsDevClient("pypi", session=session)
        errors = []

        def _fetch():
            try:
                client.get_dependencies("requests", "2.31.0")
            except Exception as e:  # pragma: no cover - surfaced via assertion
                errors.append(e)

        threads = [threading.Thread(target=_fetch) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert not errors
        assert session.get.call_count == 2
        assert len(client.cache) == 1

    def test_close_only_closes_owned_session(self):
        injected = Mock()
        client = DepsDevClient("pypi", session=injected)
        client.close()
        injected.close.assert_not_called()

        with DepsDevClient("pypi") as owned:
            session = owned._get_session()
        assert owned._session is None
        assert session is not None

    @pytest.mark.parametrize(
        "payload",
        [
            {"nodes": 5},
            {"nodes": True},
            {"edges": 7},
            {"nodes": ["not-a-node"]},
            {"nodes": [{"versionKey": "requests", "relation": "SELF"}]},
            {"nodes": [{"versionKey": {"name": 123, "version": "1.0"}, "relation": "DIRECT"}]},
            {"nodes": [{"versionKey": {"name": "idna", "version": 3.4}, "relation": "DIRECT"}]},
            {"nodes": [{"versionKey": {"name": "idna", "version": "3.4"}, "relation": "DIRECT", "errors": "x"}]},
            {"edges": [{"fromNode": 0, "toNode": "last"}]},
        ],
    )
    def test_wrongly_typed_payload_raises_decode_error(self, payload):
        session = Mock()
        session.get.return_value = _response(payload=payload)
        client = DepsDevClient("pypi", session=session)

        with pytest.raises(DecodeError):
            client.get_dependencies("requests", "2.31.0")
        assert len(client.cache) == 0

    def test_cancel_interrupts_in_flight_request(self, graph_payload):
        release = threading.Event()
        session = Mock()

        def _slow_get(*args, **kwargs):
            release.wait(timeout=5)
            return _response(payload=graph_payload("requests", "2.31.0", []))

        session.get.side_effect = _slow_get
        client = DepsDevClient("pypi", session=session, timeout=10)
        token = CancellationToken()
        timer = threading.Timer(0.1, token.cancel)

        timer.start()
        started = time.monotonic()
        try:
            with pytest.raises(OperationCancelledError):
                client.get_dependencies("requests", "2.31.0", token=token)
            elapsed = time.monotonic() - started
        finally:
            release.set()
            timer.cancel()
            client.close()

        assert elapsed < 2
        assert len(client.cache) == 0

    def test_expired_deadline_skips_request(self):
        session = Mock()
        client = DepsDevClient("pypi", session=session)
        token = Mock()
        token.cancelled = False
        token.remaining.return_value = 0.0

        with pytest.raises(OperationCancelledError):
            client.get_dependencies("requests", "2.31.0", token=token)
        session.get.assert_not_called()

    def test_concurrent_first_calls_share_one_session(self, mocker):
        def _slow_create_session():
            time.sleep(0.05)
            return Mock()

        create_session = mocker.patch(
            "depsdev_enricher._transitive.client.create_session", side_effect=_slow_create_session
        )
        client = DepsDevClient("pypi")
        barrier = threading.Barrier(4)
        sessions = []

        def _get():
            barrier.wait(timeout=5)
            sessions.append(client._get_session())

        threads = [threading.Thread(target=_get) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert create_session.call_count == 1
        assert len({id(s) for s in sessions}) == 1
        client.close()
        sessions[0].close.assert_called_once()

    def test_close_shuts_down_request_executor(self, graph_payload):
        session = Mock()
        session.get.return_value = _response(payload=graph_payload("requests", "2.31.0", []))
        client = DepsDevClient("pypi", session=session)
        client.get_dependencies("requests", "2.31.0", token=CancellationToken())
        assert client._executor is not None

        client.close()

        assert client._executor is None
        session.close.assert_not_called()
