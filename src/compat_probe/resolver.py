"""
Remote artifact resolution against a Maven repository.

Artifacts are stored under the local repository directory using the same
``group/path/artifact/version/file`` layout as the remote, and a cached
file is reused without contacting the remote.
"""

import time
from pathlib import Path
from typing import Optional

import httpx

from .cli_config import ResolverConfig
from .coordinate import ArtifactCoordinate
from .error_handling import ResolutionError, log_network_error
from .structured_logging import log_artifact_resolved


class ArtifactResolver:
    """Downloads artifacts from a Maven repository into a local cache directory."""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config or ResolverConfig()
        self.local_repository = Path(self.config.local_repository)
        self._transport = transport

    def _client(self) -> httpx.Client:
        timeout = httpx.Timeout(
            self.config.read_timeout, connect=self.config.connect_timeout
        )
        return httpx.Client(
            timeout=timeout,
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )

    def artifact_url(self, coordinate: ArtifactCoordinate) -> str:
        return f"{self.config.repository_url.rstrip('/')}/{coordinate.repository_path()}"

    def local_path(self, coordinate: ArtifactCoordinate) -> Path:
        return self.local_repository / coordinate.repository_path()

    def resolve(self, coordinate: ArtifactCoordinate) -> Path:
        """
        Return a local file for ``coordinate``, downloading it if not cached.

        The download is attempted once and written atomically, so a failed
        transfer never leaves a partial file in the cache.

        Raises:
            ResolutionError: On HTTP or filesystem failure
        """
        target = self.local_path(coordinate)
        if target.is_file():
            log_artifact_resolved(str(coordinate), str(target), cached=True)
            return target

        url = self.artifact_url(coordinate)
        partial = target.with_name(target.name + ".part")
        start_time = time.time()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with self._client() as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(partial, "wb") as out:
                        for chunk in response.iter_bytes():
                            out.write(chunk)
            partial.replace(target)
        except httpx.HTTPStatusError as e:
            partial.unlink(missing_ok=True)
            log_network_error(
                f"Artifact download failed for {coordinate}",
                "resolver",
                "resolve",
                url=url,
                status_code=e.response.status_code,
                exception=e,
            )
            raise ResolutionError(
                f"Cannot download {coordinate}: HTTP {e.response.status_code} from {url}"
            ) from e
        except httpx.HTTPError as e:
            partial.unlink(missing_ok=True)
            log_network_error(
                f"Artifact download failed for {coordinate}",
                "resolver",
                "resolve",
                url=url,
                exception=e,
            )
            raise ResolutionError(f"Cannot download {coordinate}: {e}") from e
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise ResolutionError(f"Cannot store {coordinate} at {target}: {e}") from e

        log_artifact_resolved(
            str(coordinate),
            str(target),
            cached=False,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return target
