"""
Remote recognition job protocol (submit -> poll -> fetch).

The job is an explicit state machine:

    submitted -> processing -> completed | failed | timed_out
    submitted -> failed                      (upload rejected)

`completed`, `failed` and `timed_out` are terminal; `RemoteJob.transition`
refuses any move out of them. Jobs are ephemeral: nothing is retained once
`MathpixJobClient.run` returns, and a job interrupted by cancellation is left
orphaned on the service side.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, NoReturn

import requests

from contracts.errors import JobFailed, JobTimedOut, SubmissionError

from .cancellation import CancelToken
from .contracts import MathpixConfig

LOGGER = logging.getLogger(__name__)

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"

RESULT_SUFFIX = ".md"


class JobState(str, Enum):
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATES = frozenset({JobState.COMPLETED, JobState.FAILED, JobState.TIMED_OUT})

_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.SUBMITTED: frozenset({JobState.PROCESSING, JobState.FAILED}),
    JobState.PROCESSING: frozenset({JobState.COMPLETED, JobState.FAILED, JobState.TIMED_OUT}),
}


@dataclass(slots=True)
class RemoteJob:
    external_id: str | None = None
    state: JobState = JobState.SUBMITTED
    polls: int = 0
    last_status: str | None = None
    history: list[JobState] = field(default_factory=lambda: [JobState.SUBMITTED])

    @property
    def terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new_state: JobState) -> None:
        if new_state not in _TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(f"Illegal job transition: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def describe(self) -> dict[str, Any]:
        return {
            "job_id": self.external_id,
            "state": self.state.value,
            "polls": self.polls,
            "last_status": self.last_status,
        }


@dataclass(frozen=True, slots=True)
class RemoteJobResult:
    job: RemoteJob
    text: str


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _body_excerpt(resp: requests.Response) -> str:
    return resp.content[:2000].decode("utf-8", errors="replace")


class MathpixJobClient:
    """
    Mathpix PDF API job client.

    Both credentials are sent on every request. Every request timeout is
    bounded by the configured request timeout, the caller's remaining time,
    and (while polling) the job's remaining budget.
    """

    def __init__(
        self,
        *,
        config: MathpixConfig,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._session = session if session is not None else requests.Session()
        self._clock = clock

    def _headers(self) -> dict[str, str]:
        return {"app_id": self._config.app_id, "app_key": self._config.app_key}

    def _job_url(self, job_id: str, suffix: str = "") -> str:
        return f"{self._config.api_url.rstrip('/')}/{job_id}{suffix}"

    def _send(
        self,
        method: str,
        url: str,
        *,
        cancel: CancelToken,
        budget_s: float | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        timeout = cancel.request_timeout(self._config.request_timeout_s)
        if budget_s is not None:
            timeout = min(timeout, budget_s)
        return self._session.request(method, url, headers=self._headers(), timeout=timeout, **kwargs)

    def _fail(
        self,
        job: RemoteJob,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> NoReturn:
        job.transition(JobState.FAILED)
        LOGGER.warning("Recognition job %s failed: %s", job.external_id, message)
        raise JobFailed(message, code=code, detail={**job.describe(), **(detail or {})})

    def _time_out(self, job: RemoteJob) -> NoReturn:
        job.transition(JobState.TIMED_OUT)
        LOGGER.warning(
            "Recognition job %s timed out after %.0fs (%d poll(s), last status %r)",
            job.external_id,
            self._config.job_timeout_s,
            job.polls,
            job.last_status,
        )
        raise JobTimedOut(
            f"Timed out after {self._config.job_timeout_s:.0f}s waiting for recognition results",
            detail={**job.describe(), "job_timeout_s": self._config.job_timeout_s},
        )

    def run(
        self,
        *,
        content: bytes,
        filename: str,
        content_type: str,
        cancel: CancelToken,
        options: dict[str, Any] | None = None,
    ) -> RemoteJobResult:
        job = RemoteJob()
        job.external_id = self.submit(
            job, content=content, filename=filename, content_type=content_type, options=options, cancel=cancel
        )
        job_deadline = self._clock() + self._config.job_timeout_s
        job.transition(JobState.PROCESSING)
        LOGGER.info("Submitted recognition job %s (%s, %d bytes)", job.external_id, filename, len(content))

        self.poll_until_completed(job, cancel=cancel, job_deadline=job_deadline)
        text = self.fetch(job, cancel=cancel)
        job.transition(JobState.COMPLETED)
        LOGGER.info("Recognition job %s completed after %d poll(s)", job.external_id, job.polls)
        return RemoteJobResult(job=job, text=text)

    def submit(
        self,
        job: RemoteJob,
        *,
        content: bytes,
        filename: str,
        content_type: str,
        options: dict[str, Any] | None,
        cancel: CancelToken,
    ) -> str:
        """
        Upload the document; return the service's opaque job identifier.

        Submission-time failures are never transient (credentials, quota,
        malformed input), so they fail the job without polling.
        """

        def reject(message: str, detail: dict[str, Any]) -> SubmissionError:
            job.transition(JobState.FAILED)
            LOGGER.warning("Recognition upload rejected: %s", message)
            return SubmissionError(message, detail=detail)

        files = {"file": (filename, content, content_type)}
        data = None
        if options:
            data = {"options_json": json.dumps(options, separators=(",", ":"), sort_keys=True)}

        try:
            resp = self._send("POST", self._config.api_url, cancel=cancel, files=files, data=data)
        except requests.RequestException as e:
            cancel.raise_if_done()
            raise reject("Upload request failed", {"error": repr(e)}) from e

        if not _is_success(resp.status_code):
            raise reject(
                f"Upload rejected with HTTP {resp.status_code}",
                {"status_code": resp.status_code, "body": _body_excerpt(resp)},
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise reject("Upload response is not valid JSON", {"body": _body_excerpt(resp)}) from e

        if not isinstance(payload, dict):
            raise reject("Upload response is not a JSON object", {"body": _body_excerpt(resp)})

        if payload.get("error"):
            error_info = payload.get("error_info") or {}
            message = f"Service rejected upload: {payload['error']}"
            if isinstance(error_info, dict) and error_info.get("message"):
                message += f" - {error_info['message']}"
            raise reject(message, {"error": payload["error"], "error_info": error_info})

        job_id = payload.get("pdf_id") or payload.get("job_id")
        if not isinstance(job_id, str) or not job_id:
            raise reject("Upload response carried no job identifier", {"keys": sorted(payload)})
        return job_id

    def poll_until_completed(self, job: RemoteJob, *, cancel: CancelToken, job_deadline: float) -> None:
        """
        Poll immediately, then once per interval, until the service reports
        a terminal status or the job budget runs out.

        Returns only on "completed"; every other exit raises.
        """

        cfg = self._config
        status_url = self._job_url(job.external_id)

        while True:
            remaining = job_deadline - self._clock()
            if remaining <= 0:
                self._time_out(job)

            try:
                resp = self._send("GET", status_url, cancel=cancel, budget_s=remaining)
            except requests.RequestException as e:
                cancel.raise_if_done()
                if job_deadline - self._clock() <= 0:
                    self._time_out(job)
                self._fail(job, "Status request failed", detail={"error": repr(e)})

            if not _is_success(resp.status_code):
                self._fail(
                    job,
                    f"Status request failed with HTTP {resp.status_code}",
                    detail={"status_code": resp.status_code, "body": _body_excerpt(resp)},
                )

            try:
                payload = resp.json()
            except ValueError:
                self._fail(job, "Status response is not valid JSON", detail={"body": _body_excerpt(resp)})

            status = payload.get("status") if isinstance(payload, dict) else None
            status = status if isinstance(status, str) else ""
            job.polls += 1
            job.last_status = status
            LOGGER.debug("Recognition job %s poll #%d: status=%r", job.external_id, job.polls, status)

            if status == STATUS_COMPLETED:
                return
            if status == STATUS_ERROR:
                self._fail(job, "Recognition service reported an error")
            if status != STATUS_PROCESSING:
                if cfg.strict_status:
                    self._fail(job, f"Unrecognized job status {status!r}", code="JOB_UNKNOWN_STATUS")
                LOGGER.warning(
                    "Unrecognized status %r for job %s; treating as processing", status, job.external_id
                )

            wait_s = min(cfg.poll_interval_s, max(0.0, job_deadline - self._clock()))
            if cancel.wait(wait_s):
                cancel.raise_if_done()

    def fetch(self, job: RemoteJob, *, cancel: CancelToken) -> str:
        """
        Download the recognized markdown of a completed job (not retried).
        """

        url = self._job_url(job.external_id, RESULT_SUFFIX)
        try:
            resp = self._send("GET", url, cancel=cancel)
        except requests.RequestException as e:
            cancel.raise_if_done()
            self._fail(job, "Result request failed", detail={"error": repr(e)})

        if not _is_success(resp.status_code):
            self._fail(
                job,
                f"Result request failed with HTTP {resp.status_code}",
                detail={"status_code": resp.status_code, "body": _body_excerpt(resp)},
            )

        return resp.content.decode("utf-8", errors="replace")
