""" Connection defaults for pixelport clients. Every default can be
    overridden from the environment, which is how a test harness or a
    wrapper script points the client at an already-running app:

    ============================== ===========================================
    PIXELPORT_ADDRESS              Host name of the app; default localhost.
    PIXELPORT_CONNECT_TO           TCP port of the app; default 8081.
                                   PYRAMID_CONNECT_TO is honored as well.
    PIXELPORT_TIMEOUT              Seconds to wait for the initial connection.
    PIXELPORT_RECONNECT            'on' or 'off' (default).
    PIXELPORT_RECONNECT_RETRIES    Give up after this many failed attempts.
    PIXELPORT_RECONNECT_BACKOFF    'constant' or 'exponential' (default).
    PIXELPORT_RECONNECT_INTERVAL   Seconds before the first retry.
    PIXELPORT_RECONNECT_INTERVAL_MAX  Ceiling for exponential backoff.
    ============================== ===========================================
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_ADDRESS = 'localhost'
DEFAULT_PORT = 8081
DEFAULT_TIMEOUT = 5.0


class Backoff(enum.Enum):
    CONSTANT = 'constant'
    EXPONENTIAL = 'exponential'


@dataclass(frozen=True)
class ReconnectPolicy:
    """ How a lost connection is re-established. A disabled policy leaves
        the connection DISCONNECTED for good; otherwise the transport keeps
        retrying, waiting *interval* seconds before the first attempt and,
        for exponential backoff, doubling the wait up to *interval_max*.
        With *max_retries* set, the transport gives up after that many
        failed attempts in a row.
    """

    enabled: bool = True
    max_retries: Optional[int] = None
    backoff: Backoff = Backoff.EXPONENTIAL
    interval: float = 0.1
    interval_max: float = 5.0

    def __post_init__(self) -> None:
        object.__setattr__(self, 'backoff', Backoff(self.backoff))

        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError('max_retries must be None or >= 0')
        if self.interval <= 0:
            raise ValueError('interval must be positive')
        if self.interval_max < self.interval:
            raise ValueError('interval_max must be >= interval')

    @classmethod
    def disabled(cls) -> 'ReconnectPolicy':
        return cls(enabled=False)


def address() -> str:
    return os.environ.get('PIXELPORT_ADDRESS', DEFAULT_ADDRESS)


def port() -> int:
    """ Return the TCP port of the app. ``PYRAMID_CONNECT_TO`` is the name
        used by older harnesses and is consulted second.
    """

    for variable in ('PIXELPORT_CONNECT_TO', 'PYRAMID_CONNECT_TO'):
        try:
            found = os.environ[variable]
        except KeyError:
            continue

        try:
            return int(found)
        except ValueError:
            raise ValueError(f"{variable} is not a port number: {found!r}") from None

    return DEFAULT_PORT


def timeout() -> float:
    return _float('PIXELPORT_TIMEOUT', DEFAULT_TIMEOUT)


def reconnect_policy() -> ReconnectPolicy:
    """ Build the :class:`ReconnectPolicy` described by the environment.
        Reconnection is disabled unless ``PIXELPORT_RECONNECT`` is 'on'.
    """

    switch = os.environ.get('PIXELPORT_RECONNECT', 'off').strip().lower()

    if switch in ('off', '0', 'false', 'no', ''):
        return ReconnectPolicy.disabled()
    if switch not in ('on', '1', 'true', 'yes'):
        raise ValueError(f"PIXELPORT_RECONNECT must be 'on' or 'off', not {switch!r}")

    try:
        retries = os.environ['PIXELPORT_RECONNECT_RETRIES']
    except KeyError:
        retries = None
    else:
        retries = int(retries)

    defaults = ReconnectPolicy()
    backoff = os.environ.get('PIXELPORT_RECONNECT_BACKOFF', defaults.backoff.value)

    return ReconnectPolicy(
        max_retries=retries,
        backoff=Backoff(backoff.strip().lower()),
        interval=_float('PIXELPORT_RECONNECT_INTERVAL', defaults.interval),
        interval_max=_float('PIXELPORT_RECONNECT_INTERVAL_MAX', defaults.interval_max),
    )


def _float(variable: str, default: float) -> float:
    try:
        found = os.environ[variable]
    except KeyError:
        return default

    try:
        return float(found)
    except ValueError:
        raise ValueError(f"{variable} is not a number: {found!r}") from None


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
