"""
Logging setup: JSON or text records, request context, secret masking
"""
import json
import logging
import re
import sys
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from halal_tools.core.config import get_settings

# Context variables for request context
request_context: ContextVar[Dict[str, Any]] = ContextVar('request_context', default={})

_RESERVED_RECORD_KEYS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
])


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log messages"""

    SENSITIVE_PATTERNS = [
        (r'password["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'password": "***"'),
        (r'token["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'token": "***"'),
        (r'api[_-]?key["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'api_key": "***"'),
        (r'secret["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'secret": "***"'),
        (r'otp["\']?\s*[:=]\s*["\']?([^"\'\s&]+)', r'otp": "***"'),
        (r'Bearer\s+([^\s"]+)', r'Bearer ***'),
    ]

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def _mask(self, text: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and mask sensitive data"""
        if not self.enabled:
            return True

        if isinstance(record.msg, str):
            record.msg = self._mask(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._mask(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True


class ContextualFormatter(logging.Formatter):
    """JSON formatter with request context support"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_dict = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }

        ctx = request_context.get({})
        if ctx:
            log_dict.update(ctx)

        if record.exc_info:
            log_dict['exception'] = self.formatException(record.exc_info)

        # Fields passed through extra=
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS or key in log_dict:
                continue
            try:
                json.dumps(value, default=str)
                log_dict[key] = value
            except (TypeError, ValueError):
                log_dict[key] = str(value)

        return json.dumps(log_dict, ensure_ascii=False, default=str)


class LoggingConfig:
    """Process-wide logging setup for the API and its background tasks"""

    _configured = False

    ROTATION_WHEN = ('midnight', 'W0', 'W1', 'W2', 'W3', 'W4', 'W5', 'W6')
    DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None):
        """Install handlers once; later calls are no-ops"""
        if cls._configured:
            return

        settings = get_settings()
        levels, bad_override = cls._resolve_levels(settings, module_levels)

        logging.basicConfig(
            level=getattr(logging, levels["root"].upper()),
            handlers=cls._build_handlers(settings),
            force=True,
        )
        for module, level in levels.items():
            if module != "root":
                logging.getLogger(module).setLevel(getattr(logging, level.upper()))

        cls._configured = True
        if bad_override:
            logging.getLogger(__name__).warning(
                f"Ignoring LOG_MODULE_LEVELS, expected a JSON object: {bad_override!r}"
            )

    @staticmethod
    def _resolve_levels(settings, module_levels: Optional[Dict[str, str]]):
        levels = {
            "sqlalchemy.engine": "INFO" if settings.log_sqlalchemy else "WARNING",
            "sqlalchemy.pool": "WARNING",
            "httpx": "WARNING",
            "uvicorn.access": "INFO" if settings.log_uvicorn_access else "WARNING",
            "uvicorn.error": "INFO",
            "halal_tools": settings.log_level,
            "root": settings.log_level,
        }

        bad_override = None
        if settings.log_module_levels:
            try:
                overrides = json.loads(settings.log_module_levels)
            except json.JSONDecodeError:
                overrides = None
            if isinstance(overrides, dict):
                levels.update(overrides)
            else:
                bad_override = settings.log_module_levels

        if module_levels:
            levels.update(module_levels)
        return levels, bad_override

    @classmethod
    def _build_handlers(cls, settings) -> List[logging.Handler]:
        if settings.log_format.lower() == "json":
            formatter = ContextualFormatter(datefmt=cls.DATE_FORMAT)
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt=cls.DATE_FORMAT,
            )

        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if settings.log_file_enabled:
            log_path = cls._log_path(settings.log_file_path)
            when = settings.log_file_rotation
            handlers.append(TimedRotatingFileHandler(
                filename=str(log_path),
                when=when if when in cls.ROTATION_WHEN else 'midnight',
                backupCount=settings.log_file_retention,
                encoding='utf-8',
            ))

        # One filter instance so every handler masks the same way
        sensitive_filter = SensitiveDataFilter(enabled=not settings.log_sensitive_data)
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(sensitive_filter)
        return handlers

    @staticmethod
    def _log_path(configured: str) -> Path:
        """Relative paths are resolved against the repository root"""
        log_path = Path(configured)
        if not log_path.is_absolute():
            log_path = Path(__file__).resolve().parents[3] / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return log_path

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()
        return logging.getLogger(name)

    @classmethod
    def set_context(cls, **kwargs):
        """Bind request fields that every JSON record will carry"""
        ctx = request_context.get({}).copy()
        ctx.update(kwargs)
        request_context.set(ctx)

    @classmethod
    def clear_context(cls):
        request_context.set({})
