import logging, json, re, sys, time, os

from .constants import ENV_LOG_FILE, ENV_LOG_LEVEL

# Text form of a 64-byte value (private key or signature): 86 b64url chars + '='
_SECRET_TEXT = re.compile(r"(?<![A-Za-z0-9_-])[A-Za-z0-9_-]{86}=")
REDACTED = "<redacted>"


class RedactKeyMaterial(logging.Filter):
    """Masks private key / signature text in the message before any handler sees it."""

    def filter(self, record):
        message = record.getMessage()
        masked = _SECRET_TEXT.sub(REDACTED, message)
        if masked != message:
            record.msg, record.args = masked, ()
        return True


class JSONLineFormatter(logging.Formatter):
    converter = time.gmtime  # Use UTC timestamps

    def format(self, record):
        return json.dumps({
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }, ensure_ascii=False)


def get_logger(name="signet", level=None, to_file=None):
    """Unified structured logger for all Signet SDK components.

    One JSON object per line on stdout. SIGNET_LOG_LEVEL and SIGNET_LOG_FILE
    apply when level / to_file are not given.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level or os.getenv(ENV_LOG_LEVEL, "INFO").upper())
    if not any(isinstance(f, RedactKeyMaterial) for f in logger.filters):
        logger.addFilter(RedactKeyMaterial())

    if not logger.handlers:
        formatter = JSONLineFormatter(datefmt="%Y-%m-%dT%H:%M:%SZ")
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        to_file = to_file or os.getenv(ENV_LOG_FILE)
        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
