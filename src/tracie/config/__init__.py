"""Application configuration"""

import logging
from dotenv import load_dotenv

from .loader import load_raw_config
from .core import Core
from .cache import Cache
from .connection import Connection
from .maintenance import Maintenance

load_dotenv()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_RAW_CONFIG = load_raw_config()

core = Core(_RAW_CONFIG)
cache = Cache(_RAW_CONFIG)
connection = Connection(_RAW_CONFIG)
maintenance = Maintenance(_RAW_CONFIG)

logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, level=core.LOG_LEVEL)
logging.getLogger("aiohttp").setLevel(logging.WARNING)


class Config:
    core = core
    cache = cache
    connection = connection
    maintenance = maintenance


__all__ = ["core", "cache", "connection", "maintenance", "Config"]
