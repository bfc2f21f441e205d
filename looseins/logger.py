# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging configuration for the RTK/INS processing chain"""

import copy
import logging
import sys
from enum import Enum
from typing import Mapping, Optional

ROOT_LOGGER = "looseins"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class LogLevel(Enum):
    """Log levels for the system"""
    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


logging.addLevelName(LogLevel.TRACE.value, "TRACE")


def trace(self, message, *args, **kwargs):
    """Log at TRACE level, below DEBUG"""
    if self.isEnabledFor(LogLevel.TRACE.value):
        self._log(LogLevel.TRACE.value, message, args, **kwargs)


logging.Logger.trace = trace


def level_value(level: str) -> int:
    """Numeric value of a level name, ValueError when unknown"""
    try:
        return LogLevel[level.upper()].value
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminals"""

    COLORS = {
        'TRACE': '\033[36m',     # Cyan
        'DEBUG': '\033[34m',     # Blue
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        # other handlers share the record
        record = copy.copy(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logger(name: str = ROOT_LOGGER,
                 level: str = "INFO",
                 log_file: Optional[str] = None,
                 console: bool = True) -> logging.Logger:
    """
    Setup logger with specified configuration

    Parameters:
    -----------
    name : str
        Logger name; module loggers below ``looseins`` inherit its handlers
    level : str
        Log level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_file : Optional[str]
        Log file path (if None, no file logging)
    console : bool
        Enable console output

    Returns:
    --------
    logging.Logger
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level_value(level))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get logger by name"""
    return logging.getLogger(name)


class LogContext:
    """Context manager for temporary log level change"""

    def __init__(self, logger: logging.Logger, level: str):
        self.logger = logger
        self.new_level = level_value(level)
        self.old_level = None

    def __enter__(self):
        self.old_level = self.logger.level
        self.logger.setLevel(self.new_level)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.logger.setLevel(self.old_level)


class LoggerConfig:
    """Logger configuration manager for module-specific log levels"""

    def __init__(self):
        self.module_levels = {}
        self.default_level = "INFO"
        self.log_file = None
        self.console = True

    def set_module_level(self, module_name: str, level: str):
        """Set log level for one module logger, e.g. ``looseins.rtk``"""
        self.module_levels[module_name] = level
        logging.getLogger(module_name).setLevel(level_value(level))

    def configure_from_dict(self, config: Mapping):
        """
        Configure from a dictionary

        Both the ``default_level`` key and the ``level`` key of the
        configuration file LOG section are accepted.
        """
        level = config.get('default_level', config.get('level'))
        if level:
            self.default_level = level
        if 'log_file' in config:
            self.log_file = config['log_file'] or None
        if 'console' in config:
            self.console = bool(config['console'])
        for module, module_level in (config.get('module_levels') or {}).items():
            self.set_module_level(module, module_level)

    def setup_all_loggers(self) -> logging.Logger:
        """Install handlers on the package logger and apply module levels"""
        logger = setup_logger(ROOT_LOGGER, self.default_level, self.log_file, self.console)
        for module, level in self.module_levels.items():
            logging.getLogger(module).setLevel(level_value(level))
        return logger

    def clear_module_levels(self):
        """Return module loggers to inheriting the package level"""
        for module in self.module_levels:
            logging.getLogger(module).setLevel(logging.NOTSET)
        self.module_levels = {}


logger_config = LoggerConfig()


def setup_logger_from_config(config: Mapping) -> logging.Logger:
    """Setup loggers from configuration dictionary

    Example config:
    {
        'level': 'INFO',
        'log_file': 'looseins.log',
        'console': True,
        'module_levels': {
            'looseins.rtk.ambiguity_resolution': 'DEBUG',
            'looseins.fusion': 'TRACE',
        }
    }

    Each call starts from the defaults; module levels of an earlier call
    are cleared.
    """
    global logger_config
    logger_config.clear_module_levels()
    logger_config = LoggerConfig()
    logger_config.configure_from_dict(config)
    return logger_config.setup_all_loggers()
