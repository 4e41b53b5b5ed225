from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

import httpx
import pytest

from aggregator import MetadataAggregator
from assets import AssetExtractor
from config import GitHubSettings, LLMSettings, VoiceSettings
from intelligence import BaseLLM, LLMResponse, Message, NarrativeSynthesizer
from orchestrator import InMemoryJobStore, JobPipeline, ResultNotifier, VideoOrchestrator
from render import BaseRenderAdapter, RenderRequest, VoiceSynthesizer
from sources import GitHubClient
from storage import LocalMediaStore
from utils.exceptions import RenderDispatchError

PUBLIC_URL = "http://app.test"
AUDIO = b"ID3" + b"\x01" * 4000

SINGLE_REPLY = json.dumps(
    {"summary": "Checkout is faster.", "script": "Customers now pay in one step.", "changeType": "feature"}
)
MULTI_REPLY = json.dumps(
    {
        "unifiedTitle": "Checkout rebuilt for speed",
        "summary": "Checkout is faster.",
        "script": "One story about checkout.",
        "changeType": "feature",
    }
)


class ScriptedLLM(BaseLLM):
    def __init__(self, replies: Optional[Dict[bool, str]] = None):
        super().__init__(model="scripted")
        self.replies = replies or {False: SINGLE_REPLY, True: MULTI_REPLY}
        self.calls: List[List[Message]] = []

    @property
    def provider(self) -> str:
        return "scripted"

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        self.calls.append(messages)
        multi = "Combined Pull Requests" in messages[-1].content
        return LLMResponse(content=self.replies[multi], model=self.model)


class RecordingRenderer(BaseRenderAdapter):
    provider = "recording"

    def __init__(self, *, enabled: bool = True, error: Optional[str] = None):
        self.enabled = enabled
        self.error = error
        self.requests: List[RenderRequest] = []

    @property
    def configured(self) -> bool:
        return self.enabled

    async def dispatch(self, request: RenderRequest) -> None:
        self.requests.append(request)
        if self.error:
            raise RenderDispatchError(f"Failed to start render: {self.error}")


def github_routes(numbers=(1, 2, 3), comments: Optional[Dict[int, List[dict]]] = None) -> Dict[str, object]:
    comments = comments or {}
    routes: Dict[str, object] = {}
    for number in numbers:
        base = f"/repos/acme/widgets/pulls/{number}"
        routes[base] = {
            "number": number,
            "title": f"Checkout step {number}",
            "body": f"Improves checkout part {number}",
            "user": {"login": "alice", "avatar_url": "https://avatars.example.com/alice"},
            "changed_files": number,
            "additions": 10 * number,
            "deletions": number,
        }
        routes[f"{base}/files"] = [
            {"filename": f"src/step_{number}.py", "status": "modified", "additions": 10, "deletions": 1, "patch": "+pay"}
        ]
        routes[f"{base}/commits"] = [
            {"sha": f"{number}abcdef0000", "commit": {"message": f"step {number}", "author": {"name": "Alice"}}}
        ]
        routes[f"/repos/acme/widgets/issues/{number}/comments"] = comments.get(number, [])
    return routes


@dataclass
class Harness:
    orchestrator: VideoOrchestrator
    store: InMemoryJobStore
    media_store: LocalMediaStore
    renderer: RecordingRenderer
    llm: ScriptedLLM
    routes: Dict[str, object]
    github_failures: Set[str]
    webhook_calls: List[dict] = field(default_factory=list)
    webhook_status: List[int] = field(default_factory=lambda: [200])


@pytest.fixture
def make_harness(tmp_path) -> Callable[..., Harness]:
    def _make(
        *,
        renderer_enabled: bool = True,
        renderer_error: Optional[str] = None,
        comments: Optional[Dict[int, List[dict]]] = None,
        voice_status: int = 200,
    ) -> Harness:
        routes = github_routes(comments=comments)
        failures: Set[str] = set()

        def _github(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path in failures:
                return httpx.Response(500, json={"message": "boom"})
            if path not in routes:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(200, json=routes[path])

        def _voice(request: httpx.Request) -> httpx.Response:
            if voice_status >= 400:
                return httpx.Response(voice_status, text="voice unavailable")
            return httpx.Response(200, content=AUDIO)

        store = InMemoryJobStore()
        media_store = LocalMediaStore(root=str(tmp_path / "media"), public_base_url="http://media.test")
        llm = ScriptedLLM()
        renderer = RecordingRenderer(enabled=renderer_enabled, error=renderer_error)
        harness_ref: Dict[str, Harness] = {}

        def _webhook(request: httpx.Request) -> httpx.Response:
            harness = harness_ref["h"]
            harness.webhook_calls.append({"url": str(request.url), "body": json.loads(request.content)})
            status = harness.webhook_status.pop(0) if len(harness.webhook_status) > 1 else harness.webhook_status[0]
            return httpx.Response(status)

        notifier = ResultNotifier(
            public_url=PUBLIC_URL,
            transport=httpx.MockTransport(_webhook),
            backoff_min_s=0,
            backoff_max_s=0,
        )
        pipeline = JobPipeline(
            store=store,
            aggregator=MetadataAggregator(
                client=GitHubClient(
                    settings=GitHubSettings(api_base_url="https://api.github.test"),
                    transport=httpx.MockTransport(_github),
                )
            ),
            extractor=AssetExtractor(media_store),
            synthesizer=NarrativeSynthesizer(llm=llm, settings=LLMSettings()),
            voice=VoiceSynthesizer(
                settings=VoiceSettings(api_key="xi-test", api_base_url="https://tts.test/v1"),
                transport=httpx.MockTransport(_voice),
                duration_reader=lambda audio: 42.5,
            ),
            renderer=renderer,
            media_store=media_store,
            notifier=notifier,
            public_url=PUBLIC_URL,
        )
        orchestrator = VideoOrchestrator(
            store=store,
            pipeline=pipeline,
            media_store=media_store,
            notifier=notifier,
            public_url=PUBLIC_URL,
        )
        harness = Harness(
            orchestrator=orchestrator,
            store=store,
            media_store=media_store,
            renderer=renderer,
            llm=llm,
            routes=routes,
            github_failures=failures,
        )
        harness_ref["h"] = harness
        return harness

    return _make
