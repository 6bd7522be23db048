import logging
import os
from datetime import datetime, timezone
from typing import Optional

FORMAT = "%(asctime)s %(levelname)s %(message)s"

def setup_logger(log_dir: Optional[str], level: str = "INFO") -> logging.Logger:
    """
    Logger "mmbot": stderr always, plus logs/mmbot_<utc ts>.log when log_dir is set.
    Calling it again only changes the level.
    """
    log = logging.getLogger("mmbot")
    log.setLevel(getattr(logging, level.upper(), logging.INFO))

    if log.handlers:
        return log

    fmt = logging.Formatter(FORMAT)

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    log.addHandler(sh)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        fh = logging.FileHandler(os.path.join(log_dir, f"mmbot_{ts}.log"), encoding="utf-8")
        fh.setFormatter(fmt)
        log.addHandler(fh)

    return log
