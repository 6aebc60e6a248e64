import os


class Cache:
    def __init__(self, config: dict | None = None) -> None:
        cache_cfg = (config or {}).get("tracie", {}).get("cache", {})
        self.MESSAGES_TTL: float = float(cache_cfg.get("messages_ttl", os.getenv("MESSAGES_TTL", "60")))
        self.MESSAGES_CAPACITY: int = int(cache_cfg.get("messages_capacity", os.getenv("MESSAGES_CAPACITY", "5000")))
        self.USERS_TTL: float = float(cache_cfg.get("users_ttl", os.getenv("USERS_TTL", "600")))
        self.USERS_CAPACITY: int = int(cache_cfg.get("users_capacity", os.getenv("USERS_CAPACITY", "2000")))
        self.GROUPS_TTL: float = float(cache_cfg.get("groups_ttl", os.getenv("GROUPS_TTL", "300")))
        self.GROUPS_CAPACITY: int = int(cache_cfg.get("groups_capacity", os.getenv("GROUPS_CAPACITY", "500")))
        self.MEDIA_TTL: float = float(cache_cfg.get("media_ttl", os.getenv("MEDIA_TTL", "300")))
        self.MEDIA_CAPACITY: int = int(cache_cfg.get("media_capacity", os.getenv("MEDIA_CAPACITY", "1000")))
        self.CHECK_PERIOD: float = float(cache_cfg.get("check_period", os.getenv("CACHE_CHECK_PERIOD", "60")))
        self.HISTORY_LENGTH: int = int(cache_cfg.get("history_length", os.getenv("HISTORY_LENGTH", "1000")))
