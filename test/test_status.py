from pytest import mark

from notion_tasks import *


@mark.parametrize(
    "remote_status,local_status",
    [
        ("Not started", "open"),
        ("In progress", "open"),
        ("Done", "closed"),
        ("Archived", "open"),
        ("", "open"),
        (None, "open"),
    ],
)
def test_to_local(remote_status: str | None, local_status: str):
    assert StatusMapper().to_local(remote_status) == local_status


def test_to_remote_on_close():
    assert StatusMapper().to_remote_on_close() == "Done"


def test_initial_remote_status():
    mapper = StatusMapper()

    assert mapper.initial_remote_status(["task", "closed"]) == "Done"
    assert mapper.initial_remote_status(["task", "open"]) == "Not started"
    assert mapper.initial_remote_status(["task"]) == "Not started"


def test_resolve_local_closed_wins():
    tags, status = StatusMapper().resolve_status(
        ["task", "closed"], "Not started"
    )

    assert tags == ["task", "closed"]
    assert status == "Done"


def test_resolve_remote_closed():
    tags, status = StatusMapper().resolve_status(["task", "open"], "Done")

    assert tags == ["task", "closed"]
    assert status == "Done"


def test_resolve_open_keeps_remote_status():
    """
    Open status maps back to whatever the remote had, not a canonical value.
    """
    tags, status = StatusMapper().resolve_status(["task"], "In progress")

    assert tags == ["task", "open"]
    assert status == "In progress"


def test_resolve_drops_duplicate_status_tags():
    tags, _ = StatusMapper().resolve_status(
        ["open", "task", "open", "urgent"], "Not started"
    )

    assert tags == ["task", "urgent", "open"]


def test_custom_mapping():
    mapper = StatusMapper({"Won't do": "closed"})

    assert mapper.to_local("Won't do") == "closed"

    # default table no longer applies
    assert mapper.to_local("Done") == "open"
