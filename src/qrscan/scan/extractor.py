"""Decide between a cached code and a fresh decode for one document."""

from __future__ import annotations

import logging
from typing import Optional

from qrscan.errors import CacheWriteError, PageNotAccessible, SymbolNotFound
from qrscan.models import AccessFailed, Decoded, DocumentHandle, ExtractionOutcome, NotFound
from qrscan.scan.interfaces import AttributeStore, PageRenderer, SymbolDecoder

LOGGER = logging.getLogger(__name__)


class CodeExtractor:
    """Produces an :data:`ExtractionOutcome` for a document and never raises.

    ``store`` may be ``None``, in which case caching is disabled regardless of
    the flags passed to :meth:`extract`.
    """

    def __init__(
        self,
        renderer: PageRenderer,
        decoder: SymbolDecoder,
        store: Optional[AttributeStore] = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.renderer = renderer
        self.decoder = decoder
        self.store = store
        self.logger = logger or LOGGER

    def extract(
        self,
        handle: DocumentHandle,
        page: int,
        *,
        use_cache: bool = True,
        write_cache: bool = True,
    ) -> ExtractionOutcome:
        if use_cache and self.store is not None:
            cached = self._cached_value(handle, page)
            if cached is not None:
                self.logger.debug("Using cached code for %s", handle.name)
                return Decoded(cached)

        try:
            image = self.renderer.render(handle.path, page)
        except PageNotAccessible as exc:
            return AccessFailed(str(exc))
        except Exception as exc:
            self.logger.exception("Unexpected error rendering %s", handle.name)
            return AccessFailed(str(exc))

        try:
            value = self.decoder.decode(image)
        except SymbolNotFound as exc:
            return NotFound(str(exc))
        except Exception as exc:
            self.logger.exception("Unexpected error decoding %s", handle.name)
            return NotFound(str(exc))

        if not value:
            return NotFound("Decoder returned an empty value")

        if write_cache and self.store is not None:
            self._write_cache(handle, page, value)
        return Decoded(value)

    def _cached_value(self, handle: DocumentHandle, page: int) -> Optional[str]:
        try:
            handle.load_cache(self.store)
        except Exception as exc:
            self.logger.warning("Unable to read cached code for %s: %s", handle.name, exc)
            return None
        return handle.cached_code_for(page)

    def _write_cache(self, handle: DocumentHandle, page: int, value: str) -> None:
        try:
            self.store.write(handle.path, page, value)
        except CacheWriteError as exc:
            self.logger.warning("Unable to cache code for %s: %s", handle.name, exc)
            return
        except Exception as exc:
            self.logger.warning("Unexpected error caching code for %s: %s", handle.name, exc)
            return
        handle.remember(page, value)
