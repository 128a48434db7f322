from __future__ import annotations

from gardenpub.models.document import Document
from gardenpub.models.errors import PublishTimeoutError
from gardenpub.models.publisher import BatchResult, PublishOutcome


def test_batch_result_truthiness_follows_failures() -> None:
    assert BatchResult()
    assert BatchResult.uniform(["a.md"], PublishOutcome.SKIPPED)
    assert not BatchResult.uniform(["a.md"], PublishOutcome.TIMED_OUT)


def test_batch_result_merge_and_serialisation() -> None:
    merged = BatchResult({"a.md": PublishOutcome.SKIPPED}).merge({"b.md": PublishOutcome.MISCONFIGURED})

    assert merged.failed == {"b.md": PublishOutcome.MISCONFIGURED}
    assert merged.to_dict() == {"a.md": "skipped", "b.md": "misconfigured"}


def test_document_name_and_folder() -> None:
    document = Document(path="Notes/Deep/Plants.md")

    assert document.name == "Plants.md"
    assert document.folder == "Notes/Deep"


def test_timeout_error_message() -> None:
    assert str(PublishTimeoutError("Upload of a.md", 2.5)) == "Upload of a.md did not complete within 2.5s"
