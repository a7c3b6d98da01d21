from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from app.auth import Principal, Role, get_current_principal
from app.db import get_db
from app.main import app
from app.models import UserRole
from db_support import SqliteDatabase, add_job, add_user


class WorkLogsApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.database = SqliteDatabase()
        with self.database.session() as db:
            manager = add_user(db, name='Manager', role=UserRole.MANAGER)
            worker = add_user(db, name='Worker')
            job, items = add_job(db, owner=manager, items=[(10, 5), (1, 0)])
            db.commit()
            self.job_id = job.id
            self.item_ids = [item.id for item in items]
            self.manager = Principal(id=manager.id, name='Manager', role=Role.MANAGER, active=True)
            self.worker = Principal(id=worker.id, name='Worker', role=Role.WORKER, active=True)
        self.principal = self.worker

        def _get_db():
            db = self.database.session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_current_principal] = lambda: self.principal
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.database.close()

    def test_log_completion_reports_per_item_progress(self) -> None:
        response = self.client.post(
            f'/jobs/{self.job_id}/log-completion',
            json={'hours': '2.5', 'notes': 'cut and hemmed', 'entries': [{'item_id': self.item_ids[0], 'qty_completed': 12}]},
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['per_item'][0]['order_completed'], 10)
        self.assertEqual(body['per_item'][0]['stock_completed'], 2)
        self.assertEqual(body['per_item'][0]['status'], 'PARTIALLY_COMPLETE')
        self.assertEqual(body['job_status'], 'PRODUCTION_STARTED')
        self.assertEqual(body['warnings'], [])

    def test_tagged_action_start_working(self) -> None:
        response = self.client.post(
            '/work-logs',
            json={'work_type': 'start_working', 'job_id': self.job_id, 'item_id': self.item_ids[1]},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['item_status'], 'WORKING')

    def test_tagged_action_log_completion(self) -> None:
        response = self.client.post(
            '/work-logs',
            json={
                'work_type': 'log_completion',
                'job_id': self.job_id,
                'entries': [
                    {'item_id': self.item_ids[0], 'qty_completed': 15},
                    {'item_id': self.item_ids[1], 'qty_completed': 1},
                ],
            },
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([row['status'] for row in body['per_item']], ['COMPLETE', 'COMPLETE'])
        self.assertEqual(body['job_status'], 'COMPLETED')

    def test_non_positive_quantity_is_rejected(self) -> None:
        response = self.client.post(
            f'/jobs/{self.job_id}/log-completion',
            json={'entries': [{'item_id': self.item_ids[0], 'qty_completed': 0}]},
        )
        self.assertEqual(response.status_code, 422)

        snapshot = self.client.get(f'/jobs/{self.job_id}').json()
        self.assertEqual(snapshot['items'][0]['order_completed'], 0)
        self.assertEqual(snapshot['work_logs'], [])

    def test_empty_entries_are_rejected(self) -> None:
        response = self.client.post(f'/jobs/{self.job_id}/log-completion', json={'entries': []})
        self.assertEqual(response.status_code, 422)

    def test_hours_beyond_column_precision_are_rejected(self) -> None:
        for hours in ('10000', '1.255'):
            with self.subTest(hours=hours):
                response = self.client.post(
                    f'/jobs/{self.job_id}/log-completion',
                    json={'hours': hours, 'entries': [{'item_id': self.item_ids[0], 'qty_completed': 1}]},
                )
                self.assertEqual(response.status_code, 422)

        tagged = self.client.post(
            '/work-logs',
            json={
                'work_type': 'log_completion',
                'job_id': self.job_id,
                'hours': '10000',
                'entries': [{'item_id': self.item_ids[0], 'qty_completed': 1}],
            },
        )
        self.assertEqual(tagged.status_code, 422)
        self.assertEqual(self.client.get(f'/jobs/{self.job_id}').json()['work_logs'], [])

    def test_unknown_job_is_not_found(self) -> None:
        response = self.client.post('/jobs/9999/start-working', json={'item_id': self.item_ids[0]})
        self.assertEqual(response.status_code, 404)

    def test_missing_identity_is_unauthorized(self) -> None:
        del app.dependency_overrides[get_current_principal]
        response = self.client.post(f'/jobs/{self.job_id}/start-working', json={'item_id': self.item_ids[0]})
        self.assertEqual(response.status_code, 401)

    def test_snapshot_lists_items_and_ledger(self) -> None:
        self.client.post(f'/jobs/{self.job_id}/start-working', json={'item_id': self.item_ids[0]})

        response = self.client.get(f'/jobs/{self.job_id}')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['job']['status'], 'PRODUCTION_STARTED')
        self.assertEqual([item['status'] for item in body['items']], ['WORKING', 'NOT_STARTED'])
        self.assertEqual(body['work_logs'][0]['work_type'], 'START_WORKING')
        self.assertEqual(body['work_logs'][0]['user']['name'], 'Worker')

    def test_photo_attachment(self) -> None:
        entry_id = self.client.post(
            f'/jobs/{self.job_id}/log-completion',
            json={'entries': [{'item_id': self.item_ids[1], 'qty_completed': 1}]},
        ).json()['entry_id']

        created = self.client.post(
            f'/work-logs/{entry_id}/photos',
            json={'photo_url': 'https://cdn.example.com/done.jpg', 'caption': 'finished'},
        )
        missing = self.client.post('/work-logs/9999/photos', json={'photo_url': 'https://cdn.example.com/x.jpg'})

        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()['caption'], 'finished')
        self.assertEqual(missing.status_code, 404)
        listed = self.client.get(f'/work-logs/{entry_id}/photos').json()
        self.assertEqual([photo['photo_url'] for photo in listed], ['https://cdn.example.com/done.jpg'])

    def test_manual_recalculation_is_manager_only(self) -> None:
        forbidden = self.client.post(f'/jobs/{self.job_id}/update-status')
        self.assertEqual(forbidden.status_code, 403)

        self.principal = self.manager
        response = self.client.post(f'/jobs/{self.job_id}/update-status')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'job_id': self.job_id, 'status': 'unchanged', 'changed': False})

    def test_reconciliation_reports_no_drift(self) -> None:
        self.client.post(
            f'/jobs/{self.job_id}/log-completion',
            json={'entries': [{'item_id': self.item_ids[0], 'qty_completed': 3}]},
        )
        self.principal = self.manager

        response = self.client.get(f'/jobs/{self.job_id}/reconciliation')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])


if __name__ == '__main__':
    unittest.main()
