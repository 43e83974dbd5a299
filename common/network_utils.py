# common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions.
"""
import logging
from pathlib import Path
from typing import Optional, Type, Union
from urllib.parse import urlparse

import requests

from provision.exceptions import DownloadError

module_logger = logging.getLogger(__name__)


def fetch_https(
    url: str,
    timeout: int = 60,
    ca_bundle: Optional[Union[str, Path]] = None,
    error_cls: Type[DownloadError] = DownloadError,
    current_logger: Optional[logging.Logger] = None,
) -> bytes:
    """
    Downloads url over HTTPS with certificate validation and returns the body.

    Plain-HTTP URLs, redirects to a non-HTTPS location, certificate errors,
    connection errors, timeouts and HTTP error statuses all raise
    ``error_cls``, so nothing downloaded here comes from an unauthenticated
    source.

    Args:
        url: Source URL. Must use the https scheme.
        timeout: Request timeout in seconds.
        ca_bundle: CA bundle to validate against. System store when None.
        error_cls: DownloadError subclass to raise.
        current_logger: Optional logger.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if urlparse(url).scheme != "https":
        raise error_cls(
            f"Refusing to download over an unauthenticated channel: {url}",
            source_url=url,
        )

    verify: Union[bool, str] = str(ca_bundle) if ca_bundle else True
    response: Optional[requests.Response] = None
    try:
        response = requests.get(url, timeout=timeout, verify=verify)
        response.raise_for_status()
    except requests.exceptions.SSLError as ssl_err:
        raise error_cls(
            f"Could not authenticate {url}: {ssl_err}",
            source_url=url,
            original_error=ssl_err,
        ) from ssl_err
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        raise error_cls(
            f"{url} returned HTTP {status_code}",
            source_url=url,
            original_error=http_err,
        ) from http_err
    except requests.exceptions.RequestException as req_err:
        raise error_cls(
            f"{url} is unreachable: {req_err}",
            source_url=url,
            original_error=req_err,
        ) from req_err

    final_url = response.url or url
    if urlparse(final_url).scheme != "https":
        raise error_cls(
            f"Download from {url} was redirected to a non-HTTPS location: {final_url}",
            source_url=url,
        )

    logger_to_use.debug(f"Downloaded {len(response.content)} bytes from {url}")
    return response.content
