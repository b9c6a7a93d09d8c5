"""robyn-essentials demo server."""

from robyn import Robyn

from robyn_essentials.api.demo import router as demo_router
from robyn_essentials.core.logger import LogIcon, logger
from robyn_essentials.core.settings import settings as st

app = Robyn(__file__)

# Routers
app.include_router(demo_router)


def main() -> None:
    logger.info("Starting demo server", icon=LogIcon.START, app=st.API_NAME, url=st.api_url)
    app.start(host=st.API_HOST, port=st.API_PORT)


if __name__ == "__main__":
    main()
