from functools import lru_cache

from quizgen.core.config import settings
from quizgen.storage.base import STORAGE_BUCKETS, Storage
from quizgen.storage.local import LocalStorage
from quizgen.storage.supabase import SupabaseStorage


@lru_cache(maxsize=1)
def get_storage() -> Storage:
    backend = settings.storage_backend.strip().lower()
    if backend == "supabase":
        return SupabaseStorage(
            url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            timeout=settings.storage_timeout,
        )
    return LocalStorage(
        base_path=settings.storage_base_path,
        public_base_url=settings.storage_public_base_url,
        buckets=tuple(STORAGE_BUCKETS.values()),
    )


def reset_storage_cache() -> None:
    get_storage.cache_clear()
