# 컬렉션 인덱스 생성 — 지용 담당
# 앱 스타트업에서 한 번 ensure_indexes(db)를 await로 호출한다.

RECIPES = "recipes"
USER_PROFILES = "user_profiles"


async def ensure_recipe_indexes(db):
    col = db[RECIPES]
    # 매칭 후보 조회용
    await col.create_index("cuisines")
    await col.create_index("diets")
    await col.create_index("ingredients.name")
    await col.create_index([("created_at", -1)])
    await col.create_index("total_time")
    # 목록 필터
    await col.create_index([("approved", 1), ("created_at", -1)])


async def ensure_indexes(db):
    # 가람: 사용자 프로필 저장 컬렉션
    await db[USER_PROFILES].create_index("anon_id", unique=True)
    # email 없는(None) 프로필이 여러 개여도 충돌하지 않게 문자열만 유니크
    await db[USER_PROFILES].create_index(
        "email", unique=True, partialFilterExpression={"email": {"$type": "string"}}
    )

    # 지용: 레시피 검색/매칭용 컬렉션
    await ensure_recipe_indexes(db)
