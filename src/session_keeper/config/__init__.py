"""Application configuration"""

import logging
from dotenv import load_dotenv

from .loader import load_raw_config
from .cache import Cache
from .persist import Persist

load_dotenv()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, level=logging.INFO)

_RAW_CONFIG = load_raw_config()

cache = Cache(_RAW_CONFIG)
persist = Persist(_RAW_CONFIG)


class Config:
    cache = cache
    persist = persist


__all__ = ["cache", "persist", "Config", "Cache", "Persist", "load_raw_config"]
