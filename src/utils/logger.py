import os
import sys
from loguru import logger

from src.core.config import settings


def init_logger():
    """
    Инициализация логера с настройками для файлового логирования.
    Настраивает различные уровни логов с ротацией и сжатием.
    """
    os.makedirs(settings.LOG_DIR, exist_ok=True)

    # Консольный вывод с цветами для development
    logger.add(
        sink=sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{file}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.LOG_LEVEL,
        colorize=True,
        enqueue=True,
    )

    # Общий лог файл для всех сообщений
    logger.add(
        sink=os.path.join(settings.LOG_DIR, "app.log"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{file}:{line} | {message}",
        rotation="30 days",
        retention="90 days",
        compression="zip",
        backtrace=True,
        diagnose=True,
        enqueue=True,
        catch=True,
        level="DEBUG",
    )

    # Отдельный файл для ошибок
    logger.add(
        sink=os.path.join(settings.LOG_DIR, "errors.log"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{file}:{line} | {message}",
        rotation="30 days",
        retention="90 days",
        compression="zip",
        backtrace=True,
        diagnose=True,
        enqueue=True,
        catch=True,
        level="ERROR",
        filter=lambda record: record["level"].name in ["ERROR", "CRITICAL"],
    )

    # Файл для кликов по gate-страницам и начислений
    logger.add(
        sink=os.path.join(settings.LOG_DIR, "clicks.log"),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{file}:{line} | {message}",
        rotation="7 days",
        retention="30 days",
        compression="zip",
        enqueue=True,
        catch=True,
        level="DEBUG",
        filter=lambda record: record["extra"].get("name", "").startswith("src.services"),
    )

    logger.success("Logger initialized successfully")


def get_logger(name: str = None):
    """
    Получить логер для конкретного модуля.

    Args:
        name: Имя модуля для логера

    Returns:
        logger: Настроенный логер
    """
    if name:
        return logger.bind(name=name)
    return logger
