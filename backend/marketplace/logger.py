"""
日志配置

级别、文件输出等全部来自 Config (.env)。get_logger 会先做一次默认配置，
create_app 再用实际的配置对象调整级别。
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from config import Config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# 第三方库只输出警告以上
NOISY_LOGGERS = ('urllib3', 'pymongo')

_configured = False


def _build_handlers(config_object) -> list:
    handlers = []
    if config_object.LOG_TO_STDOUT:
        handlers.append(logging.StreamHandler(sys.stdout))

    log_file = config_object.LOG_FILE
    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or '.', exist_ok=True)
            handlers.append(RotatingFileHandler(
                log_file,
                maxBytes=config_object.LOG_MAX_BYTES,
                backupCount=config_object.LOG_BACKUPS,
            ))
        except OSError as e:
            logging.getLogger(__name__).warning("Failed to initialize file logging: %s", e)
    return handlers


def setup_logging(config_object=Config):
    """挂载 handler (只做一次)；之后的调用只更新级别"""
    global _configured
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(config_object.LOG_LEVEL).upper(), logging.INFO))
    if _configured:
        return

    # 已有 handler (例如 pytest / gunicorn) 时不重复添加
    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in _build_handlers(config_object):
            handler.setFormatter(formatter)
            root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _configured:
        setup_logging()
    return logging.getLogger(name)
