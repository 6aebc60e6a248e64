import os


class Maintenance:
    def __init__(self, config: dict | None = None) -> None:
        maint_cfg = (config or {}).get("tracie", {}).get("maintenance", {})
        self.GROUP_REFRESH_INTERVAL: float = float(
            maint_cfg.get("group_refresh_interval", os.getenv("GROUP_REFRESH_INTERVAL", "60"))
        )
        self.STATS_INTERVAL: float = float(maint_cfg.get("stats_interval", os.getenv("STATS_INTERVAL", "300")))
        self.MEMORY_CHECK_INTERVAL: float = float(
            maint_cfg.get("memory_check_interval", os.getenv("MEMORY_CHECK_INTERVAL", "120"))
        )
        self.MEMORY_THRESHOLD_MB: float = float(
            maint_cfg.get("memory_threshold_mb", os.getenv("MEMORY_THRESHOLD_MB", "500"))
        )
