from mcpcli.logger.session_logger import SessionLogger

__all__ = ["SessionLogger"]
