# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/mon/quorum.py

from __future__ import annotations

import enum
import json
import logging
import time
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    QuorumCheckFailed,
    QuorumReached,
    QuorumTimedOut,
    QuorumWaitStarted,
)
from .errors import QuorumTimeoutError
from .interfaces import StatusExecutor

log = logging.getLogger("cephmon")

STATUS_COMMAND = "ceph"


# ----- status payload -----

class MonMapEntry(BaseModel):
    name: str
    rank: int
    addr: str = ""


class MonMap(BaseModel):
    epoch: int = 0
    mons: List[MonMapEntry] = Field(default_factory=list)


class MonStatusResponse(BaseModel):
    """Subset of `ceph mon_status --format json`."""
    name: str = ""
    rank: int = -1
    state: str = ""
    quorum: List[int] = Field(default_factory=list)
    monmap: MonMap = Field(default_factory=MonMap)

    def quorum_members(self) -> List[str]:
        ranks = set(self.quorum)
        return [m.name for m in self.monmap.mons if m.rank in ranks]


def parse_mon_status(raw: str) -> MonStatusResponse:
    return MonStatusResponse.model_validate(json.loads(raw))


def mon_in_quorum(entry: MonMapEntry, quorum: Sequence[int]) -> bool:
    return entry.rank in quorum


def mon_found_in_quorum(name: str, response: MonStatusResponse) -> bool:
    for entry in response.monmap.mons:
        if entry.name == name:
            return mon_in_quorum(entry, response.quorum)
    return False


# ----- state machine -----

class QuorumState(str, enum.Enum):
    POLLING = "POLLING"
    SUCCESS = "SUCCESS"
    TIMEOUT = "TIMEOUT"


def next_state(
    state: QuorumState,
    *,
    now: float,
    deadline: float,
    response: Optional[MonStatusResponse],
    expected: Sequence[str],
    require_all: bool,
) -> QuorumState:
    """
    One transition after a tick. response is None when the tick failed.
    Terminal states are sticky.
    """
    if state is not QuorumState.POLLING:
        return state
    if response is not None:
        if not require_all:
            return QuorumState.SUCCESS
        if all(mon_found_in_quorum(name, response) for name in expected):
            return QuorumState.SUCCESS
    if now >= deadline:
        return QuorumState.TIMEOUT
    return QuorumState.POLLING


class QuorumPoller:
    """
    Polls the mon status until quorum is confirmed or the deadline passes.
    Query failures are expected while mons bootstrap and are only retried.
    """

    def __init__(
        self,
        executor: StatusExecutor,
        *,
        cluster_name: str,
        interval: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.executor = executor
        self.cluster_name = cluster_name
        self.interval = interval
        self.clock = clock
        self.sleep = sleep
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(env="mon", context=cluster_name)
        self.attempts = 0
        self.last_response: Optional[MonStatusResponse] = None

    def status_args(self) -> List[str]:
        return ["mon_status", f"--cluster={self.cluster_name}", "--format", "json"]

    def query(self) -> MonStatusResponse:
        raw = self.executor.execute_for_status(STATUS_COMMAND, self.status_args())
        return parse_mon_status(raw)

    def wait_for_quorum(self, expected: Sequence[str], timeout: float, require_all: bool) -> MonStatusResponse:
        expected = list(expected)
        self.attempts = 0
        self.last_response = None
        deadline = self.clock() + timeout
        state = QuorumState.POLLING
        self.bus.emit(QuorumWaitStarted(
            expected=expected, timeout_s=timeout, require_all=require_all, **self.run_ctx
        ))

        while True:
            self.attempts += 1
            response: Optional[MonStatusResponse] = None
            try:
                response = self.query()
                self.last_response = response
            except Exception as exc:
                log.debug("failed to get mon_status (attempt %d): %s", self.attempts, exc)
                self.bus.emit(QuorumCheckFailed(attempt=self.attempts, error=str(exc), **self.run_ctx))

            state = next_state(
                state,
                now=self.clock(),
                deadline=deadline,
                response=response,
                expected=expected,
                require_all=require_all,
            )

            if state is QuorumState.SUCCESS:
                members = response.quorum_members()
                log.info("mons in quorum after %d attempt(s): %s", self.attempts, members)
                self.bus.emit(QuorumReached(members=members, attempts=self.attempts, **self.run_ctx))
                return response

            if state is QuorumState.TIMEOUT:
                members = self.last_response.quorum_members() if self.last_response else []
                self.bus.emit(QuorumTimedOut(
                    expected=expected, timeout_s=timeout, attempts=self.attempts, **self.run_ctx
                ))
                raise QuorumTimeoutError(expected, timeout, self.attempts, members)

            if response is not None:
                in_quorum = [n for n in expected if mon_found_in_quorum(n, response)]
                log.info("%d/%d mons are in quorum", len(in_quorum), len(expected))
            # never sleep past the deadline
            self.sleep(min(self.interval, max(deadline - self.clock(), 0)))
