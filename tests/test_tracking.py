"""Unit tests for active work tracking."""

import asyncio

import yaml

from carltm.tracking import ActiveWorkTracker


class TestRemoveFromQueues:
    """Test ActiveWorkTracker.remove_from_queues."""

    def test_removes_from_every_queue(self, project):
        path = project.config.active_work_path
        path.write_text(yaml.safe_dump({
            'work_queue': {
                'in_progress': [{'id': 'user_login'}, {'id': 'signup'}],
                'ready_for_work': [{'id': 'user_login'}],
                'blocked': [{'id': 'billing'}],
            },
            'intelligent_suggestions': {
                'next_logical_tasks': [
                    {'task': 'Finish user_login tests'},
                    {'task': 'Start billing'},
                ]
            },
            'session': {'owner': 'dev'},
        }, sort_keys=False), encoding='utf-8')

        assert asyncio.run(ActiveWorkTracker(project.config).remove_from_queues("user_login")) is True

        active = yaml.safe_load(path.read_text(encoding='utf-8'))
        assert active['work_queue']['in_progress'] == [{'id': 'signup'}]
        assert active['work_queue']['ready_for_work'] == []
        assert active['work_queue']['blocked'] == [{'id': 'billing'}]
        assert active['intelligent_suggestions']['next_logical_tasks'] == [{'task': 'Start billing'}]
        assert active['session'] == {'owner': 'dev'}

    def test_missing_file_is_fine(self, project):
        tracker = ActiveWorkTracker(project.config)
        assert asyncio.run(tracker.remove_from_queues("anything")) is True
        assert not project.config.active_work_path.exists()

    def test_malformed_file_reported(self, project):
        project.config.active_work_path.write_text("work_queue: [unclosed\n", encoding='utf-8')
        assert asyncio.run(ActiveWorkTracker(project.config).remove_from_queues("x")) is False

    def test_not_a_mapping(self, project):
        project.config.active_work_path.write_text("- one\n", encoding='utf-8')
        assert asyncio.run(ActiveWorkTracker(project.config).remove_from_queues("x")) is False
