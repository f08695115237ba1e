"""
Utility functions for the asset registry

Provides logging setup and small hex helpers shared by the CLI and API
"""

import logging
from pathlib import Path
from typing import Optional


# ═══════════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO", log_file: Optional[str | Path] = None) -> None:
    """Configure logging for the registry"""
    level = getattr(logging, log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def get_logger(name: str) -> logging.Logger:
    """Get logger instance for module"""
    return logging.getLogger(name)


# ═══════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════

def short_hex(value: bytes | str, length: int = 12) -> str:
    """Abbreviate a digest or transaction id for log lines."""
    text = value.hex() if isinstance(value, bytes) else value
    return text if len(text) <= length else f"{text[:length]}..."
