"""
Tests for database-backed task tracking: progress rules, results, highlights and voice preferences.
"""

import pytest
from sqlmodel import select

from podcast_pipeline.common_exceptions import NotFoundError
from podcast_pipeline.database import HighlightDB
from podcast_pipeline.podcast_models import HighlightSegment, PodcastRequest, ScriptTurn


def _create(status_manager, owner_id="user-1", reference="Some text to turn into a show."):
    return status_manager.create_task(
        PodcastRequest(owner_id=owner_id, input_type="text", source_reference=reference)
    )


def _segment(start=10, duration=30):
    return HighlightSegment(
        title="Big idea",
        description="The core argument",
        start_time=start,
        end_time=start + duration,
        duration=duration,
        transcript="David: the core argument",
    )


class TestTaskProgress:

    def test_new_task_is_pending_and_queued(self, status_manager):
        task = _create(status_manager)
        progress = status_manager.get_progress(task.id, "user-1")
        assert progress.status == "pending"
        assert progress.stage == "queued"
        assert progress.percent == 0

    def test_queued_task_stays_pending_until_picked_up(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "queued", 0, "Task queued")
        assert status_manager.get_progress(task.id, "user-1").status == "pending"

        status_manager.update_progress(task.id, "queued", 0, "Picked up", status="processing")
        assert status_manager.get_progress(task.id, "user-1").status == "processing"

        status_manager.update_progress(task.id, "queued", 0, "Still queued")
        assert status_manager.get_progress(task.id, "user-1").status == "processing"

    def test_percent_never_goes_backwards(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "analyzing", 60, "Analyzed")
        status_manager.update_progress(task.id, "analyzing", 50, "Late update")
        progress = status_manager.get_progress(task.id, "user-1")
        assert progress.percent == 60
        assert progress.status == "processing"

    def test_percent_is_clamped(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "generating", 250)
        assert status_manager.get_progress(task.id, "user-1").percent == 100

    def test_completed_forces_full_percent_and_zero_eta(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "generating", 70)
        status_manager.update_progress(task.id, "completed", 10, "Done")
        progress = status_manager.get_progress(task.id, "user-1")
        assert progress.status == "completed"
        assert progress.percent == 100
        assert progress.estimated_time_remaining == 0

    def test_terminal_state_is_final(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "completed", 100, "Done")
        status_manager.update_progress(task.id, "generating", 80, "Stray update")
        status_manager.set_error(task.id, "Too late")
        progress = status_manager.get_progress(task.id, "user-1")
        assert progress.stage == "completed"
        assert progress.message == "Done"

    def test_failure_keeps_last_percent_and_reports_error(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "transcribing", 35)
        status_manager.update_progress(task.id, "failed", 0, "Speech transcription failed.")
        status_manager.set_error(task.id, "Speech transcription failed.")
        progress = status_manager.get_progress(task.id, "user-1")
        assert progress.status == "failed"
        assert progress.percent == 35
        assert progress.message == "Speech transcription failed."

    def test_eta_shrinks_as_work_advances(self, status_manager):
        task = _create(status_manager)
        status_manager.update_progress(task.id, "downloading", 5)
        early = status_manager.get_progress(task.id, "user-1").estimated_time_remaining
        status_manager.update_progress(task.id, "analyzing", 60)
        later = status_manager.get_progress(task.id, "user-1").estimated_time_remaining
        assert later < early

    def test_progress_hides_other_owners_tasks(self, status_manager):
        task = _create(status_manager)
        with pytest.raises(NotFoundError):
            status_manager.get_progress(task.id, "someone-else")

    def test_unknown_task_updates_are_ignored(self, status_manager):
        assert status_manager.update_progress("missing", "analyzing", 50) is None
        assert status_manager.set_error("missing", "boom") is None


class TestTaskResults:

    def test_episode_script_round_trips(self, status_manager):
        task = _create(status_manager)
        turns = [
            ScriptTurn(speaker_id="v1", speaker_name="David", content="Welcome"),
            ScriptTurn(speaker_id="v2", speaker_name="Emma", content="Thanks"),
        ]
        status_manager.update_results(task.id, episode_script=turns, summary="Summary")
        stored = status_manager.get_task(task.id)
        assert stored.summary == "Summary"
        assert status_manager.episode_scripts(stored) == turns

    def test_unknown_result_field_is_rejected(self, status_manager):
        task = _create(status_manager)
        with pytest.raises(ValueError):
            status_manager.update_results(task.id, owner_id="hijack")

    def test_find_active_task_ignores_finished_tasks(self, status_manager):
        task = _create(status_manager)
        assert status_manager.find_active_task("user-1", "text", task.source_reference).id == task.id
        status_manager.update_progress(task.id, "completed", 100)
        assert status_manager.find_active_task("user-1", "text", task.source_reference) is None

    def test_list_tasks_is_scoped_to_owner(self, status_manager):
        _create(status_manager, reference="first text")
        _create(status_manager, reference="second text")
        _create(status_manager, owner_id="user-2")
        assert len(status_manager.list_tasks("user-1")) == 2
        assert len(status_manager.list_tasks("user-1", limit=1)) == 1


class TestHighlights:

    def test_save_and_list(self, status_manager):
        task = _create(status_manager)
        record = status_manager.save_highlight(task.id, "user-1", _segment(), "https://clip", "podcast-highlights/k.mp3")
        listed = status_manager.list_highlights(task.id, "user-1")
        assert [h.id for h in listed] == [record.id]
        assert listed[0].transcript_excerpt == "David: the core argument"
        assert status_manager.list_highlights(task.id, "user-2") == []

    def test_delete_task_cascades_to_highlights(self, status_manager, database):
        task = _create(status_manager)
        status_manager.save_highlight(task.id, "user-1", _segment(), "https://clip", "k1")
        status_manager.save_highlight(task.id, "user-1", _segment(start=40), "https://clip2", "k2")

        assert status_manager.delete_task(task.id, "user-1") is True

        with database.session() as session:
            assert session.exec(select(HighlightDB)).all() == []
        assert status_manager.get_task(task.id) is None

    def test_delete_requires_owner(self, status_manager):
        task = _create(status_manager)
        record = status_manager.save_highlight(task.id, "user-1", _segment(), "https://clip", "k1")
        assert status_manager.delete_highlight(record.id, "user-2") is False
        assert status_manager.delete_task(task.id, "user-2") is False
        assert status_manager.delete_highlight(record.id, "user-1") is True


class TestVoicePreferences:

    def test_upsert(self, status_manager):
        assert status_manager.get_voice_preference("user-1") is None
        status_manager.save_voice_preference("user-1", "en-US-Neural2-D", "en-US-Neural2-F")
        status_manager.save_voice_preference("user-1", "en-US-Neural2-J", "en-US-Neural2-F")
        preference = status_manager.get_voice_preference("user-1")
        assert preference.host1_voice_id == "en-US-Neural2-J"
        assert preference.host2_voice_id == "en-US-Neural2-F"
        assert preference.updated_at is not None
