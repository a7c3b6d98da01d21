from sqlalchemy import select

from app.db import SessionLocal, engine
from app.models import Base, Job, JobItem, JobStatus, User, UserRole


def seed() -> None:
    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        manager = db.execute(select(User).where(User.email == 'manager@example.com')).scalar_one_or_none()
        if not manager:
            manager = User(name='Manager', email='manager@example.com', role=UserRole.MANAGER, active=True)
            db.add(manager)
            db.flush()

        worker = db.execute(select(User).where(User.email == 'worker@example.com')).scalar_one_or_none()
        if not worker:
            db.add(User(name='Worker', email='worker@example.com', role=UserRole.WORKER, active=True))

        job = db.execute(select(Job).where(Job.job_number == 'DEMO-001')).scalar_one_or_none()
        if not job:
            job = Job(job_number='DEMO-001', created_by_user_id=manager.id, status=JobStatus.IN_PRODUCTION)
            db.add(job)
            db.flush()
            demo_items = [
                ('BNR-3X6', 'Vinyl Banner 3x6', 10, 5),
                ('BNR-4X8', 'Vinyl Banner 4x8', 4, 0),
                ('FLG-TRD', 'Feather Flag', 0, 12),
            ]
            for position, (sku, name, order_qty, stock_qty) in enumerate(demo_items):
                db.add(
                    JobItem(
                        job_id=job.id,
                        sku=sku,
                        name=name,
                        position=position,
                        order_qty=order_qty,
                        stock_qty=stock_qty,
                    )
                )

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
