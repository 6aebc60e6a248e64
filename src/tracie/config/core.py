import logging
import os

from .loader import as_bool

logger = logging.getLogger(__name__)


class Core:
    def __init__(self, config: dict | None = None) -> None:
        cfg = (config or {}).get("tracie", {})
        bot_cfg = cfg.get("bot", {})

        self.BOT_NAME: str = str(bot_cfg.get("name", os.getenv("BOT_NAME", "Tracie Bot")))
        self.OWNER: str = str(bot_cfg.get("owner", os.getenv("OWNER", "")))

        self.SESSION_DIR: str = str(bot_cfg.get("session_dir", os.getenv("SESSION_DIR", "data/session")))
        self.PRINT_QR: bool = as_bool(bot_cfg.get("print_qr", os.getenv("PRINT_QR", "0")))
        self.BOT_IMG: str = str(bot_cfg.get("bot_img", os.getenv("BOT_IMG", "https://files.catbox.moe/z0k3fv.jpg")))
        self.ANTI_DELETE: bool = as_bool(bot_cfg.get("anti_delete", os.getenv("ANTI_DELETE", "1")))
        self.ANTIDELETE_IN_CHAT: bool = as_bool(
            bot_cfg.get("antidelete_in_chat", os.getenv("ANTIDELETE_IN_CHAT", "0"))
        )
        self.LOG_LEVEL: str = str(cfg.get("log_level", os.getenv("LOG_LEVEL", "INFO"))).upper()

        if self.ANTI_DELETE and not self.OWNER and not self.ANTIDELETE_IN_CHAT:
            logger.info("ANTI_DELETE enabled without OWNER; revoked messages will only be logged.")
