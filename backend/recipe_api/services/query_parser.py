# app/services/query_parser.py
# 자연어 레시피 요청 → ParsedQuery (규칙 기반)
# - 고정 어휘(요리/식단/난이도) 키워드 매칭만, 형태소 분석/퍼지 매칭 없음
# - "without X" / "no X" 다음 토큰은 제외 재료로
# - 숫자 필터: 조리 시간 / 인분 / 칼로리

from __future__ import annotations
import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from recipe_api.core.errors import EmptyQueryError

CUISINES = (
    "mexican", "italian", "asian", "french", "chinese", "indian", "japanese",
    "thai", "korean", "greek", "mediterranean", "american", "spanish",
)
DIETS = (
    "vegan", "vegetarian", "paleo", "gluten-free", "ketogenic",
    "dairy-free", "pescatarian",
)
DIET_ALIASES = {"keto": "ketogenic"}
DIFFICULTIES = ("easy", "medium", "hard")

EXCLUSION_MARKERS = {"without", "no"}
# 제외 표시와 재료 사이에 끼어도 되는 단어
EXCLUSION_BRIDGES = {"any", "a", "the"}

# 재료가 아닌 단어 (문장 구성/요청 표현)
STOP_WORDS = {
    "i", "me", "my", "we", "us", "you", "a", "an", "the", "some", "any", "and", "or",
    "with", "of", "for", "to", "in", "on", "at", "from", "that", "this", "it", "is",
    "are", "be", "can", "could", "would", "should", "will", "please", "want", "wanted",
    "like", "love", "need", "make", "cook", "give", "find", "show", "get", "have",
    "has", "something", "anything", "dish", "dishes", "recipe", "recipes", "meal",
    "meals", "food", "dinner", "lunch", "breakfast", "brunch", "snack", "dessert",
    "style", "quick", "simple", "tasty", "healthy", "good", "nice", "under", "within",
    "less", "than", "below", "over", "about", "around", "serves", "serving", "servings",
    "people", "persons", "person", "minutes", "minute", "mins", "min", "hour", "hours",
    "calories", "calorie", "kcal", "cuisine", "diet", "free", "but", "also", "using",
    "use", "includes", "include", "including", "contain", "contains", "much", "very",
    "more", "most", "extra", "ready",
}

RX_WORD = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")

RX_TIME = re.compile(r"\b(?:under|within|less than|no more than|at most|in)\s+(\d+)\s*(?:minutes|minute|mins|min)\b")
RX_HOURS = re.compile(r"\b(?:under|within|less than|no more than|at most|in)\s+(\d+)\s*(?:hours|hour)\b")
RX_SERVINGS = (
    re.compile(r"\bfor\s+(\d+)\s*(?:people|persons|servings|person)\b"),
    re.compile(r"\bserves\s+(\d+)\b"),
    re.compile(r"\b(\d+)\s*servings\b"),
)
RX_CALORIES = re.compile(r"\b(?:under|less than|below|no more than|at most)\s+(\d+)\s*(?:calories|calorie|kcal)\b")

# 두 단어 식단 표기 → 하이픈 키워드
_PHRASES = (
    (re.compile(r"\bgluten\s+free\b"), "gluten-free"),
    (re.compile(r"\bdairy\s+free\b"), "dairy-free"),
)


class ParsedQuery(BaseModel):
    # 파서가 만든 뒤로는 변경 불가
    model_config = ConfigDict(frozen=True)

    cuisine: str = "unknown"
    dietary_restriction: str = "none"
    ingredients: Tuple[str, ...] = ()
    exclusions: Tuple[str, ...] = ()
    max_total_time: Optional[int] = None    # 분 (준비+조리)
    servings: Optional[int] = None
    max_calories: Optional[int] = None      # 1인분 기준
    difficulty: str = ""

    def active_attributes(self) -> List[str]:
        """기본값이 아닌 속성 이름들 (매칭 대상). exclusions는 필터라서 제외."""
        active: List[str] = []
        if self.cuisine != "unknown":
            active.append("cuisine")
        if self.dietary_restriction != "none":
            active.append("dietary_restriction")
        active.extend(f"ingredient:{i}" for i in self.ingredients)
        if self.difficulty:
            active.append("difficulty")
        if self.max_total_time is not None:
            active.append("max_total_time")
        if self.servings is not None:
            active.append("servings")
        if self.max_calories is not None:
            active.append("max_calories")
        return active

    def as_attributes(self) -> dict:
        # 생성 API에 같이 보내는 구조화 속성
        return {
            "cuisine": self.cuisine,
            "dietary_restriction": self.dietary_restriction,
            "ingredients": list(self.ingredients),
            "exclusions": list(self.exclusions),
            "max_total_time": self.max_total_time,
            "servings": self.servings,
            "max_calories": self.max_calories,
            "difficulty": self.difficulty,
        }


def _first_int(rx: re.Pattern, text: str) -> Optional[int]:
    m = rx.search(text)
    return int(m.group(1)) if m else None


def _numeric_filters(text: str) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    minutes = _first_int(RX_TIME, text)
    if minutes is None:
        hours = _first_int(RX_HOURS, text)
        minutes = hours * 60 if hours is not None else None

    servings = None
    for rx in RX_SERVINGS:
        servings = _first_int(rx, text)
        if servings is not None:
            break

    return minutes, servings, _first_int(RX_CALORIES, text)


def _earliest_keyword(text: str, vocab: Tuple[str, ...]) -> Optional[str]:
    hits = [(text.find(k), k) for k in vocab if k in text]
    return min(hits)[1] if hits else None


def parse_recipe_query(text: str) -> ParsedQuery:
    if not text or not text.strip():
        raise EmptyQueryError("empty query")

    lowered = text.lower()
    for rx, repl in _PHRASES:
        lowered = rx.sub(repl, lowered)

    max_time, servings, max_calories = _numeric_filters(lowered)

    cuisine = "unknown"
    dietary = "none"
    difficulty = ""
    ingredients: List[str] = []
    exclusions: List[str] = []

    exclude_next = False
    for tok in RX_WORD.findall(lowered):
        if tok in EXCLUSION_MARKERS:
            exclude_next = True
            continue
        # "without any onions"의 any처럼 관사만 건너뛴다. 그 외 단어가 오면 제외 해제
        # ("no more than 30 minutes"의 no는 제외 표시가 아님)
        if exclude_next and tok in EXCLUSION_BRIDGES:
            continue

        diet = DIET_ALIASES.get(tok, tok)
        if tok in CUISINES:
            exclude_next = False
            if cuisine == "unknown":
                cuisine = tok
            continue
        if diet in DIETS:
            exclude_next = False
            if dietary == "none":
                dietary = diet
            continue
        if tok in DIFFICULTIES:
            exclude_next = False
            difficulty = difficulty or tok
            continue

        # 숫자/불용어는 재료 후보가 아님
        if tok.isdigit() or tok in STOP_WORDS:
            exclude_next = False
            continue

        if exclude_next:
            exclusions.append(tok)
            exclude_next = False
        else:
            ingredients.append(tok)

    # 토큰 단위로 못 찾았으면 부분 문자열로 한 번 더 (가장 앞에 나온 키워드)
    # 키워드를 품은 토큰("tex-italian")은 재료에서 뺀다
    if cuisine == "unknown":
        cuisine = _earliest_keyword(lowered, CUISINES) or cuisine
        if cuisine != "unknown":
            ingredients = [i for i in ingredients if cuisine not in i]
    if dietary == "none":
        dietary = _earliest_keyword(lowered, DIETS) or dietary
        if dietary != "none":
            ingredients = [i for i in ingredients if dietary not in i]

    excluded = set(exclusions)
    return ParsedQuery(
        cuisine=cuisine,
        dietary_restriction=dietary,
        ingredients=tuple(dict.fromkeys(i for i in ingredients if i not in excluded)),
        exclusions=tuple(dict.fromkeys(exclusions)),
        max_total_time=max_time,
        servings=servings,
        max_calories=max_calories,
        difficulty=difficulty,
    )
