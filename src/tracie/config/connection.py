import os


class Connection:
    def __init__(self, config: dict | None = None) -> None:
        conn_cfg = (config or {}).get("tracie", {}).get("connection", {})
        self.BRIDGE_URL: str | None = conn_cfg.get("bridge_url") or os.getenv("BRIDGE_URL")
        self.PROXY: str | None = conn_cfg.get("proxy") or os.getenv("PROXY") or None

        # Fixed delay between reconnect attempts; the remote service tolerates frequent reconnects.
        self.RECONNECT_DELAY: float = float(conn_cfg.get("reconnect_delay", os.getenv("RECONNECT_DELAY", "5")))
        self.STARTUP_RETRY_DELAY: float = float(
            conn_cfg.get("startup_retry_delay", os.getenv("STARTUP_RETRY_DELAY", "10"))
        )
        self.MAX_RECONNECT_ATTEMPTS: int = int(
            conn_cfg.get("max_reconnect_attempts", os.getenv("MAX_RECONNECT_ATTEMPTS", "5"))
        )
        self.KEEPALIVE_INTERVAL: float = float(
            conn_cfg.get("keepalive_interval", os.getenv("KEEPALIVE_INTERVAL", "30"))
        )
        self.REQUEST_TIMEOUT: float = float(conn_cfg.get("request_timeout", os.getenv("REQUEST_TIMEOUT", "30")))
        self.EVENT_QUEUE_SIZE: int = int(conn_cfg.get("event_queue_size", os.getenv("EVENT_QUEUE_SIZE", "1000")))

        if not self.BRIDGE_URL:
            raise ValueError("Missing environment variables: BRIDGE_URL")
        if not self.BRIDGE_URL.startswith(("ws://", "wss://")):
            raise ValueError(f"BRIDGE_URL must be a ws:// or wss:// url, got {self.BRIDGE_URL!r}")
