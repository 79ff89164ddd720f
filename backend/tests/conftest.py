import copy
import json
import re
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from recipe_api.core.config import EmbeddingMode, Settings
from recipe_api.core.context import build_context
from recipe_api.db.models.recipe import RecipeDoc, RecipeDraft
from recipe_api.services.recipe_store import RecipeStore


# ---------------------------------------------------------------------------
# motor 컬렉션 대역 (테스트에 필요한 만큼만)
# ---------------------------------------------------------------------------

def _path_values(doc: Dict[str, Any], path: str) -> List[Any]:
    vals: List[Any] = [doc]
    for part in path.split("."):
        nxt: List[Any] = []
        for v in vals:
            if isinstance(v, list):
                nxt.extend(x.get(part) for x in v if isinstance(x, dict) and part in x)
            elif isinstance(v, dict) and part in v:
                nxt.append(v[part])
        vals = nxt
    out: List[Any] = []
    for v in vals:
        out.extend(v if isinstance(v, list) else [v])
    return out


def _cond_ok(vals: List[Any], cond: Any) -> bool:
    if isinstance(cond, re.Pattern):
        return any(isinstance(v, str) and cond.search(v) for v in vals)
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        for op, arg in cond.items():
            if op == "$nin":
                ok = not any(v in arg for v in vals)
            elif op == "$ne":
                # 필드가 없으면 null과 같게 본다
                ok = arg not in (vals or [None])
            elif op == "$not":
                ok = not _cond_ok(vals, arg)
            elif op in ("$lte", "$gt"):
                nums = [v for v in vals if isinstance(v, (int, float)) and not isinstance(v, bool)]
                ok = any(v <= arg if op == "$lte" else v > arg for v in nums)
            elif op == "$type":
                ok = any(isinstance(v, str) for v in vals) if arg == "string" else False
            else:
                raise NotImplementedError(op)
            if not ok:
                return False
        return True
    if cond is None:
        return all(v is None for v in vals)
    return cond in vals


def _matches(doc: Dict[str, Any], flt: Dict[str, Any]) -> bool:
    for key, cond in flt.items():
        if key == "$or":
            ok = any(_matches(doc, f) for f in cond)
        elif key == "$and":
            ok = all(_matches(doc, f) for f in cond)
        elif key == "$nor":
            ok = not any(_matches(doc, f) for f in cond)
        else:
            ok = _cond_ok(_path_values(doc, key), cond)
        if not ok:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]) -> None:
        self.docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self.docs = sorted(self.docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def skip(self, n: int) -> "FakeCursor":
        self.docs = self.docs[n:]
        return self

    def limit(self, n: int) -> "FakeCursor":
        self.docs = self.docs[:n]
        return self

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return [copy.deepcopy(d) for d in self.docs[:length]]

    async def __aiter__(self):
        for d in self.docs:
            yield copy.deepcopy(d)


class FakeCollection:
    def __init__(self, fail: bool = False) -> None:
        self.docs: Dict[Any, Dict[str, Any]] = {}
        self.fail = fail
        # 유니크 인덱스 흉내 (None 값은 검사하지 않음)
        self.unique: Tuple[str, ...] = ()

    def _check_unique(self, doc: Dict[str, Any]) -> None:
        for key in self.unique:
            val = doc.get(key)
            if val is None:
                continue
            for other in self.docs.values():
                if other is not doc and other.get("_id") != doc.get("_id") and other.get(key) == val:
                    raise DuplicateKeyError(f"duplicate {key}")

    def _check(self) -> None:
        if self.fail:
            raise ServerSelectionTimeoutError("mongo is down")

    async def insert_one(self, doc: Dict[str, Any]):
        self._check()
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", len(self.docs) + 1)
        if doc["_id"] in self.docs:
            raise DuplicateKeyError("duplicate _id")
        self._check_unique(doc)
        self.docs[doc["_id"]] = doc
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, flt: Dict[str, Any]):
        self._check()
        for d in self.docs.values():
            if _matches(d, flt):
                return copy.deepcopy(d)
        return None

    def find(self, flt: Optional[Dict[str, Any]] = None) -> FakeCursor:
        self._check()
        return FakeCursor([d for d in self.docs.values() if _matches(d, flt or {})])

    async def update_one(self, flt: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        self._check()
        for d in self.docs.values():
            if _matches(d, flt):
                self._check_unique({**d, **update.get("$set", {})})
                d.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, upserted_id=None)
        doc = {k: v for k, v in flt.items() if not isinstance(v, dict)}
        doc.update(copy.deepcopy(update.get("$set", {})))
        doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
        res = await self.insert_one(doc)
        return SimpleNamespace(matched_count=0, upserted_id=res.inserted_id)

    async def create_index(self, *args, **kwargs) -> str:
        return "ok"


class FakeDB:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, name: str):
        return {"ok": 1}


# ---------------------------------------------------------------------------
# 업스트림(OpenAI 호환) 대역
# ---------------------------------------------------------------------------

UPSTREAM = "http://upstream.test/v1"


class Upstream:
    """httpx.MockTransport 핸들러. 응답을 순서대로 돌려주고 요청을 기록한다."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.chat: List[Any] = []
        self.embeddings: List[Any] = []

    def _next(self, queue: List[Any], request: httpx.Request) -> httpx.Response:
        if not queue:
            raise AssertionError(f"unexpected upstream call {request.url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, json=item)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/chat/completions"):
            return self._next(self.chat, request)
        if request.url.path.endswith("/embeddings"):
            return self._next(self.embeddings, request)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def body(self, request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


def chat_response(content: Optional[str]) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "deepseek-chat",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


def embedding_response(vectors: List[List[float]]) -> Dict[str, Any]:
    return {
        "object": "list",
        "model": "text-embedding-3-small",
        "data": [{"object": "embedding", "index": i, "embedding": v} for i, v in enumerate(vectors)],
        "usage": {"prompt_tokens": 1, "total_tokens": 1},
    }


GENERATED_RECIPE = {
    "title": "Smoky Black Bean Tacos",
    "description": "Vegan tacos with charred tomatoes.",
    "ingredients": [
        {"name": "black beans", "amount": 400, "unit": "g"},
        {"name": "tomatoes", "amount": 3, "unit": ""},
        {"name": "corn tortillas", "amount": 8, "unit": ""},
    ],
    "steps": [
        {"order": 1, "description": "Char the tomatoes."},
        {"order": 2, "description": "Warm the beans and fill the tortillas."},
    ],
    "nutritional_info": "420 kcal per serving",
    "allergy_disclaimer": "Contains corn.",
    "cuisines": ["Mexican"],
    "diets": ["vegan"],
    "appliances": ["skillet"],
    "tags": ["tacos"],
    "images": [],
    "difficulty": "easy",
    "prep_time": 10,
    "cooking_time": 15,
    "servings": 4,
    "calories_per_serving": 420,
    "approved": True,
}


# ---------------------------------------------------------------------------
# fixtures
# ---------------------------------------------------------------------------

def make_settings(**overrides) -> Settings:
    base = dict(
        _env_file=None,
        GENERATION_API_BASE=UPSTREAM,
        GENERATION_API_KEY="gen-key",
        EMBEDDING_API_BASE=UPSTREAM,
        EMBEDDING_API_KEY="emb-key",
        EMBEDDING_MODE=EmbeddingMode.live,
        RETRY_DELAY=0.0,
    )
    base.update(overrides)
    return Settings(**base)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def fake_db() -> FakeDB:
    return FakeDB()


@pytest.fixture
def ctx(settings, fake_db, upstream):
    return build_context(settings, fake_db, http_client=upstream.client())


@pytest.fixture
def store(fake_db) -> RecipeStore:
    return RecipeStore(fake_db["recipes"])


_T0 = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def seed(fake_db) -> Callable[..., RecipeDoc]:
    """recipes 컬렉션에 직접 문서를 넣는다. age_min이 클수록 오래된 레시피."""
    counter = {"n": 0}

    def _seed(title: str, age_min: int = 0, **fields) -> RecipeDoc:
        counter["n"] += 1
        ts = _T0 - timedelta(minutes=age_min)
        doc = RecipeDoc(
            **RecipeDraft(title=title, **fields).model_dump(),
            id=f"r{counter['n']}",
            created_at=ts,
            updated_at=ts,
        )
        fake_db["recipes"].docs[doc.id] = doc.to_mongo()
        return doc

    return _seed
