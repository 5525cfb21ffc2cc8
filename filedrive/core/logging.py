import logging


class CredentialFilter(logging.Filter):
    """Redact credential fields passed through ``extra=``."""

    BLOCKED_KEYS = {"password", "password_hash", "token", "access_token"}

    def filter(self, record: logging.LogRecord) -> bool:
        for key in self.BLOCKED_KEYS:
            if hasattr(record, key):
                setattr(record, key, "[REDACTED]")
        return True


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    root = logging.getLogger()
    if not any(isinstance(f, CredentialFilter) for f in root.filters):
        root.addFilter(CredentialFilter())
