"""
Reference-data loaders composed on the cache store.

Each loader owns one domain: it builds the key from every filter it applies,
picks a TTL class and reads through ``TTLCacheStore.get_or_fetch``. Realtime
invalidation for these keys is wired in ``realtime.invalidation``.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config.settings import CacheSettings
from ..core.cache import TTLCacheStore
from ..core.keys import make_key
from ..core.logging import get_logger
from ..remote.source import RemoteDataSource, Row
from .refresh import ForceRefreshFlags

logger = get_logger(__name__)


@dataclass(frozen=True)
class Loaded:
    key: str
    data: Any
    cache_hit: bool


class ReferenceCatalog:
    def __init__(
        self,
        store: TTLCacheStore,
        source: RemoteDataSource,
        cache_settings: Optional[CacheSettings] = None,
        flags: Optional[ForceRefreshFlags] = None,
    ) -> None:
        self.store = store
        self.source = source
        self.cache_settings = cache_settings or CacheSettings()
        self.flags = flags or ForceRefreshFlags()

    async def _load(
        self, domain: str, ttl_class: str, fetch: Callable[[], Awaitable[Any]], **scope: Any
    ) -> Loaded:
        key = make_key(domain, **scope)
        if self.flags.consume(domain):
            logger.info(f"force refresh requested for {domain}", extra={"cache_key": key, "cache_op": "refresh"})
            self.store.invalidate(key)
        ttl_ms = self.cache_settings.ttl_ms(ttl_class)
        fetched = False

        async def _fetch() -> Any:
            nonlocal fetched
            fetched = True
            logger.debug(
                f"fetching {domain}",
                extra={"cache_key": key, "cache_op": "fetch", "ttl_class": ttl_class, "ttl_ms": ttl_ms},
            )
            return await fetch()

        data = await self.store.get_or_fetch(key, ttl_ms, _fetch)
        return Loaded(key=key, data=data, cache_hit=not fetched)

    async def degrees(self) -> Loaded:
        async def fetch() -> List[Row]:
            return await self.source.query(
                "degrees",
                options={"select": "id, name, name_ru, code, status", "order": "name"},
            )

        return await self._load("degrees", "catalog", fetch)

    async def groups(self, degree_id: Optional[str] = None) -> Loaded:
        async def fetch() -> List[Row]:
            filters = {"degree_id": degree_id} if degree_id is not None else None
            groups = await self.source.query("groups", filters, {"order": "name"})
            degrees = {d["id"]: d for d in await self.source.query("degrees")}
            students = await self.source.query("profiles", {"role": "student"})
            counts: Dict[Any, int] = {}
            for profile in students:
                counts[profile.get("group_id")] = counts.get(profile.get("group_id"), 0) + 1
            return [
                {
                    "id": str(g["id"]),
                    "name": g.get("name"),
                    "display_name": g.get("display_name"),
                    "degree": degrees.get(g.get("degree_id"), {}).get("name", "Unknown"),
                    "degree_id": g.get("degree_id"),
                    "academic_year": g.get("academic_year"),
                    "students": counts.get(g["id"], 0),
                    "status": g.get("status"),
                }
                for g in groups
            ]

        return await self._load("groups", "reference", fetch, degree_id=degree_id)

    async def universities(self) -> Loaded:
        async def fetch() -> List[Row]:
            return await self.source.query("universities", options={"order": "name"})

        return await self._load("universities", "catalog", fetch)

    async def countries(self) -> Loaded:
        async def fetch() -> List[Row]:
            return await self.source.query("countries", options={"order": "name"})

        return await self._load("countries", "catalog", fetch)

    async def courses(self, group_id: Optional[str] = None) -> Loaded:
        async def fetch() -> List[Row]:
            filters = {"group_id": group_id} if group_id is not None else None
            courses = await self.source.query("courses", filters, {"order": "name"})
            degrees = {d["id"]: d for d in await self.source.query("degrees")}
            result = []
            for course in courses:
                degree = degrees.get(course.get("degree_id"))
                result.append(
                    {
                        **course,
                        "degree": (
                            {
                                "id": degree["id"],
                                "name": degree.get("name") or "",
                                "code": degree.get("code") or "",
                            }
                            if degree
                            else None
                        ),
                    }
                )
            return result

        return await self._load("courses", "reference", fetch, group_id=group_id)

    async def exchange_universities(self, pack_id: str) -> Loaded:
        async def fetch() -> List[Row]:
            links = await self.source.query("exchange_universities", {"elective_exchange_id": pack_id})
            wanted = {link["university_id"] for link in links}
            universities = await self.source.query("universities", options={"order": "name"})
            return [u for u in universities if u["id"] in wanted]

        return await self._load("exchange_universities", "reference", fetch, pack_id=pack_id)

    async def app_settings(self) -> Loaded:
        async def fetch() -> Dict[str, Any]:
            rows = await self.source.query("settings", options={"limit": 1})
            return rows[0] if rows else {}

        return await self._load("settings", "settings", fetch)

    async def student_selections(self, student_id: str) -> Loaded:
        async def fetch() -> Dict[str, List[Row]]:
            courses = await self.source.query("course_selections", {"student_id": student_id})
            exchanges = await self.source.query("exchange_selections", {"student_id": student_id})
            return {"courses": courses, "exchanges": exchanges}

        return await self._load("student_selections", "selections", fetch, student_id=student_id)


# resource name -> (loader attribute, accepted scope query params, required params)
RESOURCES: Dict[str, Tuple[str, Tuple[str, ...], Tuple[str, ...]]] = {
    "degrees": ("degrees", (), ()),
    "groups": ("groups", ("degree_id",), ()),
    "universities": ("universities", (), ()),
    "countries": ("countries", (), ()),
    "courses": ("courses", ("group_id",), ()),
    "exchange_universities": ("exchange_universities", ("pack_id",), ("pack_id",)),
    "settings": ("app_settings", (), ()),
    "student_selections": ("student_selections", ("student_id",), ("student_id",)),
}
