from __future__ import annotations

from dataclasses import dataclass, field

from ..core.models import TERMINAL_SLIDE_JOB_STATES, SlideJobState


@dataclass(slots=True)
class SlideRuntimeState:
    progress_by_job: dict[str, float] = field(default_factory=dict)
    state_by_job: dict[str, str] = field(default_factory=dict)
    name_by_job: dict[str, str] = field(default_factory=dict)
    total_jobs: int = 0
    last_progress_percent: int = -1

    def initialize_jobs(self, job_ids: list[str], job_names: dict[str, str]) -> None:
        self.progress_by_job = {job_id: 0.0 for job_id in job_ids}
        self.state_by_job = {job_id: SlideJobState.QUEUED.value for job_id in job_ids}
        self.name_by_job = {job_id: str(job_names.get(job_id, "")) for job_id in job_ids}
        self.total_jobs = len(job_ids)
        self.last_progress_percent = -1

    def update_progress(self, job_id: str, percent: float) -> bool:
        """Record one job's progress; True when the overall bar should move."""
        if job_id not in self.progress_by_job:
            return False
        self.progress_by_job[job_id] = max(0.0, min(100.0, float(percent)))
        overall = int(self.overall_percent())
        if overall == self.last_progress_percent:
            return False
        self.last_progress_percent = overall
        return True

    def update_state(self, job_id: str, state: str) -> None:
        if job_id not in self.state_by_job:
            return
        self.state_by_job[job_id] = str(state or "")
        if state in TERMINAL_SLIDE_JOB_STATES:
            self.progress_by_job[job_id] = 100.0

    def overall_percent(self) -> float:
        if not self.progress_by_job:
            return 0.0
        return sum(self.progress_by_job.values()) / len(self.progress_by_job)

    @property
    def finished_jobs(self) -> int:
        return sum(1 for state in self.state_by_job.values() if state in TERMINAL_SLIDE_JOB_STATES)

    def reset(self) -> None:
        self.progress_by_job = {}
        self.state_by_job = {}
        self.name_by_job = {}
        self.total_jobs = 0
        self.last_progress_percent = -1
