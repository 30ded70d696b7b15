import logging
import os
import sys

_ROOT = "esia"


def get_logger(name: str | None = None):
    """Return the ``esia`` logger (or a child of it).

    The stdout handler is attached to the package logger only, children
    propagate to it.
    """
    root = logging.getLogger(_ROOT)
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s %(message)s")
        h.setFormatter(fmt)
        root.addHandler(h)
        root.setLevel(os.getenv("ESIA_LOG_LEVEL", "INFO").upper())
    if not name:
        return root
    return root.getChild(name)
