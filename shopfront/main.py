import logging

import uvicorn

from shopfront.config import settings
from shopfront.db.sqlite import init_db, purge_sessions


def main() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    init_db()
    purge_sessions()

    uvicorn.run("shopfront.web.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
