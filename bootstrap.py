import logging

from attendance_desk.config import settings
from attendance_desk.db import Base, SessionLocal, engine
from attendance_desk.services.assistant_service import ensure_default_admin


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('bootstrap')


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = ensure_default_admin(db, settings)
        if result.get('seeded'):
            logger.info('Bootstrap executed: %s', result)
        else:
            logger.info('Bootstrap skipped: %s', result)
    finally:
        db.close()


if __name__ == '__main__':
    main()
