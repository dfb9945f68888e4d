"""Multi-provider vibe search: sequential priority phase, parallel fallback, merge."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from types import MappingProxyType

from engine.json_utils import safe_json_dumps
from engine.models import PROVIDER_NAMES, SearchStatus, UnifiedSearchResponse
from engine.search_adapters import default_adapters
from engine.search_config import ProviderSettings, SearchConfig, resolve_search_config
from engine.search_scoring import dedupe_tracks, rank_tracks
from engine.timestamps import utc_now
from config import settings
from providers.errors import ErrorKind, ProviderError, SearchError

# Provider order used by smart_search: richest metadata first.
SMART_SEARCH_ORDER = ("spotify", "soundcloud", "youtube")


def _log_event(level, message, **fields):
    payload = {"message": message, **fields}
    try:
        logging.log(level, safe_json_dumps(payload, sort_keys=True))
    except Exception as exc:
        logging.log(level, f"log_event_serialization_failed: {exc} message={message}")


class _Outcome:
    __slots__ = ("tracks", "error")

    def __init__(self, tracks=None, error=None):
        self.tracks = tracks
        self.error = error

    @property
    def ok(self):
        return self.error is None


class UnifiedSearchService:
    def __init__(self, adapters=None, *, config=None):
        self.adapters = adapters if adapters is not None else default_adapters()
        self.config = resolve_search_config(config)

    def get_provider_status(self):
        status = {}
        for name in PROVIDER_NAMES:
            adapter = self.adapters.get(name)
            status[name] = {
                "available": adapter is not None,
                "configured": bool(adapter is not None and adapter.is_configured()),
            }
        return status

    def smart_search(self, raw_input, *, now=None):
        """Search every configured provider, Spotify first, with fallback on."""
        providers = {}
        for priority, name in enumerate(SMART_SEARCH_ORDER, start=1):
            adapter = self.adapters.get(name)
            current = self.config.providers.get(name, ProviderSettings())
            providers[name] = ProviderSettings(
                enabled=bool(adapter is not None and adapter.is_configured()),
                priority=priority,
                timeout_ms=current.timeout_ms,
            )
        config = SearchConfig(
            providers=MappingProxyType(providers),
            max_results=self.config.max_results,
            fallback_enabled=True,
        )
        return self.search_music(raw_input, config, now=now)

    def search_music(self, raw_input, config=None, *, now=None):
        started = time.monotonic()
        raw_input = str(raw_input or "")
        config = resolve_search_config(config, base=self.config)
        now = now or utc_now()

        enabled = config.enabled_providers()
        if not enabled:
            raise SearchError(ErrorKind.NO_PROVIDERS_AVAILABLE, "No music providers enabled")

        errors = {}
        runnable = []
        for name in enabled:
            adapter = self.adapters.get(name)
            if adapter is None or not adapter.is_configured():
                errors[name] = ErrorKind.NOT_CONFIGURED
                _log_event(logging.WARNING, "provider_not_configured", provider=name)
                continue
            runnable.append(name)
        if not runnable:
            raise SearchError(
                ErrorKind.NO_PROVIDERS_AVAILABLE,
                f"No enabled provider is configured ({', '.join(enabled)})",
            )

        single_provider = len(runnable) == 1 and not config.fallback_enabled
        collected = []
        contributed = []
        succeeded = set()

        executor = ThreadPoolExecutor(
            max_workers=max(2, len(runnable) * 2),
            thread_name_prefix="vibe-search",
        )
        try:
            for name in runnable:
                provider_settings = config.providers[name]
                _log_event(
                    logging.INFO,
                    "provider_search_started",
                    provider=name,
                    timeout_ms=provider_settings.timeout_ms,
                )
                future = executor.submit(self.adapters[name].search, raw_input, now=now)
                outcome = self._settle(name, future, time.monotonic() + provider_settings.timeout_sec)
                if not outcome.ok:
                    errors[name] = outcome.error.kind
                    if single_provider:
                        raise outcome.error
                    continue
                succeeded.add(name)
                errors.pop(name, None)
                if outcome.tracks:
                    collected.extend(outcome.tracks)
                    contributed.append(name)
                    if not config.fallback_enabled and len(collected) >= config.max_results:
                        break

            if (
                len(collected) < settings.FALLBACK_MIN_TRACKS
                and config.fallback_enabled
                and len(runnable) > 1
            ):
                pending = [name for name in runnable if name not in contributed]
                _log_event(
                    logging.INFO,
                    "parallel_fallback_started",
                    providers=pending,
                    tracks_so_far=len(collected),
                )
                submitted_at = time.monotonic()
                futures = {
                    name: executor.submit(self.adapters[name].search, raw_input, now=now)
                    for name in pending
                }
                # Settle every future before merging; one failure never stops the join.
                outcomes = {
                    name: self._settle(name, future, submitted_at + config.providers[name].timeout_sec)
                    for name, future in futures.items()
                }
                for name in pending:
                    outcome = outcomes[name]
                    if not outcome.ok:
                        errors.setdefault(name, outcome.error.kind)
                        continue
                    succeeded.add(name)
                    errors.pop(name, None)
                    if outcome.tracks:
                        collected.extend(outcome.tracks)
                        contributed.append(name)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        ranked = rank_tracks(dedupe_tracks(collected), raw_input, limit=config.max_results, now=now)
        if ranked:
            status = SearchStatus.OK
        elif not succeeded:
            status = SearchStatus.NO_PROVIDERS_AVAILABLE
        else:
            status = SearchStatus.NO_RESULTS

        search_time = int((time.monotonic() - started) * 1000)
        _log_event(
            logging.INFO,
            "search_completed",
            status=status,
            providers=contributed,
            results=len(ranked),
            errors=errors,
            search_time_ms=search_time,
        )
        return UnifiedSearchResponse(
            tracks=tuple(ranked),
            total_results=len(ranked),
            providers=tuple(contributed),
            search_time=search_time,
            status=status,
            errors=MappingProxyType(dict(errors)),
        )

    def _settle(self, name, future, deadline):
        """Wait for one adapter call until ``deadline``; a late call is abandoned."""
        try:
            result = future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FuturesTimeoutError:
            future.cancel()
            _log_event(logging.WARNING, "provider_search_timeout", provider=name)
            return _Outcome(error=ProviderError(name, ErrorKind.TIMEOUT, f"{name} search timed out"))
        except ProviderError as exc:
            _log_event(
                logging.WARNING,
                "provider_search_failed",
                provider=name,
                kind=exc.kind,
                error=str(exc),
            )
            return _Outcome(error=exc)
        except Exception as exc:
            logging.exception("provider_search_exception provider=%s", name)
            return _Outcome(error=ProviderError(name, ErrorKind.UNKNOWN, f"{name} search failed: {exc}"))
        return _Outcome(tracks=list(result.tracks))


_DEFAULT_SERVICE = None


def search_music(raw_input, config=None, *, now=None):
    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        _DEFAULT_SERVICE = UnifiedSearchService()
    return _DEFAULT_SERVICE.search_music(raw_input, config, now=now)
