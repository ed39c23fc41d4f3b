from fastapi.testclient import TestClient
from langchain_core.language_models import FakeListChatModel

from assistant_kit.backends.langchain_chat import LangChainChatBackend


def _client(monkeypatch, responses: list[str]) -> TestClient:
    # Import after environment setup so the module-level app stays offline.
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    from assistant_kit.api.main import create_app

    backend = LangChainChatBackend(FakeListChatModel(responses=responses), name="fake-chat")
    return TestClient(create_app(backend))


def test_chat_wraps_answer_in_envelope(monkeypatch) -> None:
    client = _client(monkeypatch, ["Hello there!\nHow can I help?"])

    resp = client.post("/chat", json={"message": "Hi", "session_id": "s1"})

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "AI Response",
        "payload": {
            "algo": "fake-chat",
            "request": "Hi",
            "response": ["Hello there!", "How can I help?"],
        },
    }


def test_api_ingest_custom_chat_trace_metrics(monkeypatch, tmp_path) -> None:
    client = _client(monkeypatch, ["Customer data must be encrypted at rest."])

    doc = tmp_path / "policy.txt"
    doc.write_text(
        "Company policy states employees must encrypt customer data at rest.\n" * 200,
        encoding="utf-8",
    )

    ingest_resp = client.post(
        "/ingest",
        json={"path": str(doc), "doc_id": "policy-doc", "metadata": {"source": "policy"}},
    )
    assert ingest_resp.status_code == 200
    assert ingest_resp.json()["chunks_created"] >= 1
    assert ingest_resp.json()["chunk_ids"][0] == "policy-doc-chunk-0000"

    chat_resp = client.post("/chat/custom", json={"message": "How is customer data stored?"})
    assert chat_resp.status_code == 200
    assert chat_resp.json()["payload"]["response"] == ["Customer data must be encrypted at rest."]

    traces_resp = client.get("/traces")
    assert traces_resp.status_code == 200
    trace = traces_resp.json()["items"][-1]
    assert trace["method"] == "answer_from_documents"
    assert trace["retrieved_chunk_ids"]

    detail_resp = client.get(f"/traces/{trace['trace_id']}")
    assert detail_resp.status_code == 200
    assert detail_resp.json()["session_id"] == "default"
    assert client.get("/traces/missing").status_code == 404

    source_resp = client.post("/sources/search", json={"query": "encrypt customer data", "top_k": 2})
    assert source_resp.status_code == 200
    assert source_resp.json()["items"][0]["doc_id"] == "policy-doc"

    metrics_resp = client.get("/metrics")
    assert metrics_resp.status_code == 200
    assert metrics_resp.json()["total_requests"] == 1

    health = client.get("/health").json()
    assert health["llm_configured"] is True
    assert health["corpus_chunks"] >= 1


def test_structured_extraction_and_error_mapping(monkeypatch) -> None:
    client = _client(
        monkeypatch,
        ["first_name: John\nlast_name: Doe\nbirth_date: July 4th, 1968", "I have no idea."],
    )

    ok = client.post("/chat/structured", json={"message": "John Doe was born on July 4th, 1968."})
    assert ok.status_code == 200
    assert ok.json()["payload"]["response"] == [
        "first_name: John",
        "last_name: Doe",
        "birth_date: 1968-07-04",
    ]

    failed = client.post("/chat/structured", json={"message": "Nobody in particular."})
    assert failed.status_code == 422
    assert failed.json()["detail"]["error"] == "UnparsableResponseError"
    assert failed.json()["detail"]["category"] == "response"

    assert client.get("/metrics").json()["failed_requests"] == 1


def test_chat_without_backend_and_bad_ingest(monkeypatch, tmp_path) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    from assistant_kit.api.main import create_app

    client = TestClient(create_app())

    assert client.post("/chat", json={"message": "Hi"}).status_code == 503
    assert client.post("/chat", json={"message": ""}).status_code == 422
    assert client.post("/ingest", json={"path": str(tmp_path / "missing.txt")}).status_code == 400
    assert client.get("/health").json()["llm_configured"] is False


def test_backend_failures_map_to_gateway_statuses(monkeypatch) -> None:
    from langchain_core.language_models import BaseChatModel
    from langchain_core.outputs import ChatResult
    from pydantic import ConfigDict

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    from assistant_kit.api.main import create_app

    class FailingChat(BaseChatModel):
        model_config = ConfigDict(arbitrary_types_allowed=True)

        error: Exception
        calls: int = 0

        @property
        def _llm_type(self) -> str:
            return "failing"

        def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
            self.calls += 1
            raise self.error

    for error, status in ((TimeoutError("deadline exceeded"), 504), (RuntimeError("boom"), 502)):
        llm = FailingChat(error=error)
        client = TestClient(create_app(LangChainChatBackend(llm, name="failing")))

        resp = client.post("/chat", json={"message": "Hi", "session_id": "s1"})

        assert resp.status_code == status
        assert resp.json()["detail"]["category"] == "backend"
        assert llm.calls == 1
        assert client.get("/metrics").json()["failed_requests"] == 1
