"""FTP sessions used to list remote directories."""

from __future__ import annotations

import ftplib
import logging
import ssl
from typing import List, Protocol

from ftpindex.config import SiteConfig
from ftpindex.errors import ListingError, SiteConnectionError
from ftpindex.ingestion.listing import parse_stat_reply
from ftpindex.models import Entry

LOGGER = logging.getLogger(__name__)

# Servers send names in whatever bytes they were stored with. Latin-1 maps
# every byte to a character, so a reply never fails to decode.
CONTROL_ENCODING = "latin-1"


class DirectoryLister(Protocol):
    def list(self, path: str) -> List[Entry]:
        """Return the entries directly under ``path`` or raise ``ListingError``."""
        ...


class FTPSession:
    """An authenticated control connection to one site.

    A transport or decoding failure in the middle of a reply leaves the rest
    of that reply unread on the control channel. The session is then marked
    broken and every later ``list`` fails without touching the connection.
    """

    def __init__(self, client: ftplib.FTP, site_name: str) -> None:
        self.client = client
        self.site_name = site_name
        self.broken = False

    def __enter__(self) -> "FTPSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def list(self, path: str) -> List[Entry]:
        if self.broken:
            raise ListingError(path, "session closed after an earlier failure")
        # STAT answers on the control channel, so no data connection per directory.
        LOGGER.debug("[%s] STAT %s", self.site_name, path)
        try:
            reply = self.client.sendcmd(f"STAT {path}")
        except ftplib.Error as exc:
            raise ListingError(path, exc) from exc
        except (UnicodeError, OSError, EOFError) as exc:
            self.broken = True
            LOGGER.warning(
                "[%s] Control connection unusable after STAT %s: %s", self.site_name, path, exc
            )
            raise ListingError(path, exc) from exc
        return parse_stat_reply(path, reply)

    def close(self) -> None:
        if self.broken:
            self.client.close()
            return
        try:
            self.client.quit()
        except (ftplib.Error, UnicodeError, OSError, EOFError):
            self.client.close()


def _insecure_tls_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def connect_site(site: SiteConfig) -> FTPSession:
    """Dial and log in to ``site``, upgrading to TLS when configured."""
    if site.tls:
        client: ftplib.FTP = ftplib.FTP_TLS(
            context=_insecure_tls_context(), encoding=CONTROL_ENCODING
        )
    else:
        client = ftplib.FTP(encoding=CONTROL_ENCODING)
    try:
        client.connect(site.host, site.port, timeout=site.connect_timeout)
    except (ftplib.Error, UnicodeError, OSError, EOFError) as exc:
        raise SiteConnectionError(
            f"connection to {site.address} failed after {site.connect_timeout:g}s: {exc}"
        ) from exc
    try:
        # FTP_TLS.login issues AUTH TLS before sending credentials.
        client.login(site.username, site.password)
    except (ftplib.Error, UnicodeError, OSError, EOFError) as exc:
        client.close()
        mode = "login with TLS" if site.tls else "login"
        raise SiteConnectionError(f"{mode} to {site.address} failed: {exc}") from exc
    LOGGER.info("[%s] Connected to %s (TLS=%s)", site.name, site.address, site.tls)
    return FTPSession(client, site.name)
