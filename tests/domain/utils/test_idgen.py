from app.domain.utils.idgen import new_live_session_id, new_meeting_id, new_queue_entry_id, new_ulid


def test_prefixes():
    assert new_live_session_id().startswith("ls_")
    assert new_queue_entry_id().startswith("qe_")
    assert new_meeting_id().startswith("mt_")


def test_ulid_is_lowercase_and_unique():
    ids = {new_ulid() for _ in range(100)}

    assert len(ids) == 100
    assert all(i == i.lower() and len(i) == 26 for i in ids)
