import pytest

from jobqueue.v1.jobs.models import Job, JobKind, JobStatus
from jobqueue.v1.jobs.schemas import HandlerResult, JobCreate, JobEnqueueRequest


class TestJobStatus:
    def test_terminal_states(self):
        assert JobStatus.DONE.is_terminal
        assert JobStatus.ERROR.is_terminal
        assert not JobStatus.PENDING.is_terminal
        assert not JobStatus.RUNNING.is_terminal

    @pytest.mark.parametrize(
        "source, target",
        [
            (JobStatus.PENDING, JobStatus.RUNNING),
            (JobStatus.PENDING, JobStatus.ERROR),
            (JobStatus.RUNNING, JobStatus.DONE),
            (JobStatus.RUNNING, JobStatus.ERROR),
        ],
    )
    def test_allowed_transitions(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize("source", [JobStatus.DONE, JobStatus.ERROR])
    def test_terminal_states_have_no_exit(self, source):
        assert not any(source.can_transition_to(target) for target in JobStatus)

    def test_running_never_returns_to_pending(self):
        assert not JobStatus.RUNNING.can_transition_to(JobStatus.PENDING)


class TestJob:
    def test_new_job_is_pending(self):
        job = Job.new(JobKind.FETCH_JSON, {"url": "https://example.com"})

        assert job.id is None
        assert job.kind == "fetch_json"
        assert job.status == JobStatus.PENDING.value
        assert job.payload == {"url": "https://example.com"}
        assert job.output is None
        assert not job.is_terminal()

    def test_new_job_copies_payload(self):
        payload = {"a": 1}
        job = Job.new(JobKind.FETCH_JSON, payload)
        payload["a"] = 2

        assert job.payload == {"a": 1}

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            Job.new("send_email")


class TestSchemas:
    def test_handler_result_helpers(self):
        ok = HandlerResult.ok({"rows": 3})
        failed = HandlerResult.fail("bad input")

        assert ok.success and ok.output == {"rows": 3} and ok.error is None
        assert not failed.success and failed.error == "bad input"

    def test_enqueue_request_requires_jobs(self):
        with pytest.raises(ValueError):
            JobEnqueueRequest(jobs=[])

    def test_job_create_validates_kind(self):
        assert JobCreate(kind="crawl_price").kind is JobKind.CRAWL_PRICE
        with pytest.raises(ValueError):
            JobCreate(kind="nope")
