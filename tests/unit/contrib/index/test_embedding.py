import json
import threading
import time
from unittest import mock

import pytest
import requests

from django_ai_search.conf import SearchSettings
from django_ai_search.contrib.index.embedding import (
    EmbeddingTransformer,
    HuggingFaceEmbeddingTransformer,
    check_dimensions,
)
from django_ai_search.contrib.index.schema import Chunk
from django_ai_search.exceptions import (
    ConfigurationError,
    DeserializationError,
    DimensionMismatchError,
    RemoteRejectionError,
    RequestTimeoutError,
    TransportError,
)

ENDPOINT = "https://example.com/models/sentence-transformers/all-MiniLM-L6-v2"


def make_response(body, status_code=200):
    """Helper to build a requests.Response with a JSON (or raw bytes) body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    response._content = body if isinstance(body, bytes) else json.dumps(body).encode()
    return response


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def transformer(session):
    return HuggingFaceEmbeddingTransformer(
        api_key="hf_test", endpoint=ENDPOINT, timeout=5.0, session=session
    )


class TestHuggingFaceEmbeddingTransformer:
    def test_embed_string(self, transformer, session):
        session.post.return_value = make_response([0.1, 0.2, 3])

        assert transformer.embed_string("alpha text") == [0.1, 0.2, 3.0]
        session.post.assert_called_once_with(
            ENDPOINT,
            headers={"Authorization": "Bearer hf_test"},
            json=["alpha text"],
            timeout=5.0,
        )

    def test_missing_api_key_makes_no_request(self, session):
        transformer = HuggingFaceEmbeddingTransformer(api_key=None, session=session)

        with pytest.raises(ConfigurationError):
            transformer.embed_string("alpha text")

        assert session.post.call_count == 0

    def test_error_object_is_a_deserialization_error(self, transformer, session):
        session.post.return_value = make_response({"error": "Model is loading"})

        with pytest.raises(DeserializationError):
            transformer.embed_string("alpha text")

    @pytest.mark.parametrize(
        "body",
        [
            [],
            [[0.1, 0.2, 0.3]],
            ["0.1", "0.2"],
            [True, False],
            b"not json",
        ],
    )
    def test_rejects_anything_but_a_flat_number_array(self, transformer, session, body):
        session.post.return_value = make_response(body)

        with pytest.raises(DeserializationError):
            transformer.embed_string("alpha text")

    def test_non_success_status_is_a_remote_rejection(self, transformer, session):
        session.post.return_value = make_response({"error": "unavailable"}, 503)

        with pytest.raises(RemoteRejectionError) as exc_info:
            transformer.embed_string("alpha text")

        assert exc_info.value.status_code == 503
        assert "unavailable" in exc_info.value.body
        assert not isinstance(exc_info.value, DeserializationError)

    def test_timeout(self, transformer, session):
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(RequestTimeoutError) as exc_info:
            transformer.embed_string("alpha text")

        assert isinstance(exc_info.value, TransportError)
        assert exc_info.value.operation == "embed"
        assert exc_info.value.target == ENDPOINT

    def test_connection_error_is_not_retried_by_default(self, transformer, session):
        session.post.side_effect = requests.ConnectionError("no route to host")

        with pytest.raises(TransportError):
            transformer.embed_string("alpha text")

        assert session.post.call_count == 1

    @mock.patch("time.sleep")
    def test_retries_transport_errors(self, mock_sleep, session):
        transformer = HuggingFaceEmbeddingTransformer(
            api_key="hf_test", max_retries=2, session=session
        )
        session.post.side_effect = [
            requests.ConnectionError("connection reset"),
            make_response([0.5, 0.5]),
        ]

        assert transformer.embed_string("alpha text") == [0.5, 0.5]
        assert session.post.call_count == 2

    @mock.patch("time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep, session):
        transformer = HuggingFaceEmbeddingTransformer(
            api_key="hf_test", max_retries=2, session=session
        )
        session.post.side_effect = requests.ConnectionError("connection reset")

        with pytest.raises(TransportError):
            transformer.embed_string("alpha text")

        assert session.post.call_count == 3

    def test_remote_rejection_is_not_retried(self, session):
        transformer = HuggingFaceEmbeddingTransformer(
            api_key="hf_test", max_retries=3, session=session
        )
        session.post.return_value = make_response({"error": "bad request"}, 400)

        with pytest.raises(RemoteRejectionError):
            transformer.embed_string("alpha text")

        assert session.post.call_count == 1

    def test_is_not_memoized(self, transformer, session):
        session.post.return_value = make_response([0.1, 0.2])

        transformer.embed_string("alpha text")
        transformer.embed_string("alpha text")

        assert session.post.call_count == 2

    def test_from_settings(self, session):
        search_settings = SearchSettings(
            embedding_api_key="hf_settings",
            embedding_endpoint=ENDPOINT,
            request_timeout=12.0,
            max_retries=1,
        )

        transformer = HuggingFaceEmbeddingTransformer.from_settings(
            search_settings, session=session
        )

        assert transformer.api_key == "hf_settings"
        assert transformer.endpoint == ENDPOINT
        assert transformer.timeout == 12.0
        assert transformer.max_retries == 1
        assert transformer.session is session

    def test_transformer_id(self, transformer):
        assert (
            transformer.transformer_id
            == "huggingface_sentence-transformers/all-MiniLM-L6-v2"
        )


class StubEmbeddingTransformer(EmbeddingTransformer):
    """Embeds a string as [len(text), 1.0, 0.0], optionally failing for one text."""

    def __init__(self, fail_on=None, delays=None):
        self.fail_on = fail_on
        self.delays = delays or {}
        self.calls = []
        self.lock = threading.Lock()

    def embed_string(self, text):
        with self.lock:
            self.calls.append(text)
        time.sleep(self.delays.get(text, 0))
        if text == self.fail_on:
            raise TransportError("boom", operation="embed")
        return [float(len(text)), 1.0, 0.0]


class TestEmbedChunks:
    def test_preserves_order_and_ids(self):
        chunks = [Chunk(id=0, text="a"), Chunk(id=1, text="bb"), Chunk(id=2, text="ccc")]

        points = StubEmbeddingTransformer().embed_chunks(chunks)

        assert [point.id for point in points] == [0, 1, 2]
        assert [point.payload for point in points] == [
            {"text": "a"},
            {"text": "bb"},
            {"text": "ccc"},
        ]
        assert points[2].vector == [3.0, 1.0, 0.0]

    def test_empty(self):
        assert StubEmbeddingTransformer().embed_chunks([]) == []

    def test_sequential_by_default(self):
        transformer = StubEmbeddingTransformer()
        chunks = [Chunk(id=i, text=str(i)) for i in range(5)]

        transformer.embed_chunks(chunks)

        assert transformer.calls == ["0", "1", "2", "3", "4"]

    def test_dimension_check(self):
        chunks = [Chunk(id=0, text="a")]

        with pytest.raises(DimensionMismatchError) as exc_info:
            StubEmbeddingTransformer().embed_chunks(chunks, dimensions=384)

        assert exc_info.value.target == "chunk 0"

    def test_worker_pool_keeps_id_order(self):
        """Later chunks finishing first must not reorder the points."""
        transformer = StubEmbeddingTransformer(delays={"a": 0.05, "bb": 0.02})
        chunks = [Chunk(id=0, text="a"), Chunk(id=1, text="bb"), Chunk(id=2, text="ccc")]

        points = transformer.embed_chunks(chunks, max_workers=3)

        assert [point.id for point in points] == [0, 1, 2]
        assert [point.text for point in points] == ["a", "bb", "ccc"]

    def test_worker_pool_failure_propagates(self):
        transformer = StubEmbeddingTransformer(fail_on="bb")
        chunks = [Chunk(id=i, text=text) for i, text in enumerate(["a", "bb", "ccc"])]

        with pytest.raises(TransportError):
            transformer.embed_chunks(chunks, max_workers=2)

    def test_worker_pool_cancels_pending_work_on_failure(self):
        transformer = StubEmbeddingTransformer(
            fail_on="0", delays={str(i): 0.05 for i in range(1, 50)}
        )
        chunks = [Chunk(id=i, text=str(i)) for i in range(50)]

        with pytest.raises(TransportError):
            transformer.embed_chunks(chunks, max_workers=2)

        assert len(transformer.calls) < len(chunks)


def test_check_dimensions():
    check_dimensions([0.1, 0.2], 2)

    with pytest.raises(DimensionMismatchError):
        check_dimensions([0.1, 0.2], 3)
