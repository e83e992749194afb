"""
日志配置

为 'momfield' 命名空间配置日志输出。库模块内部只使用
logging.getLogger(__name__)，由应用方调用本函数决定输出方式。
"""
import logging
import sys
from typing import Optional


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    配置 'momfield' 日志器

    Args:
        level: 日志级别（如 logging.DEBUG, logging.INFO）
        log_file: 可选的日志文件路径

    Returns:
        已配置的包级日志器
    """
    logger = logging.getLogger("momfield")
    logger.setLevel(level)

    # 重复调用时避免叠加处理器
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("日志系统已初始化")
    return logger
