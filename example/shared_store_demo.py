import threading

import structlog

from seance import InMemoryHub, MemoryStorage, init_observable, init_observer, setup_logging
from seance.errors import NotConnected

STORE = "https://store.example"
APP = "https://app.example"

logger = structlog.get_logger(__name__)


def main():
    setup_logging(log_level="INFO", log_format="console", service_name="seance-demo")

    # One in-process carrier standing in for the real channel between origins
    hub = InMemoryHub()
    hub.start()

    server = init_observable([APP], transport=hub.endpoint(STORE),
                             storage=MemoryStorage({"theme": "light"}))

    ready = threading.Event()
    observer = init_observer(
        STORE,
        transport=hub.endpoint(APP),
        created=lambda uuid: ready.set(),
        destroyed=lambda uuid: logger.info("observer destroyed", uuid=uuid),
        heartbeat_interval=0.2,
    )

    try:
        observer.connect()
    except NotConnected as e:
        logger.info("not connected yet (expected before the handshake)", error=str(e))

    if not ready.wait(timeout=2):
        logger.error("handshake never completed")
        return

    seq = (observer.connect()
           .get(["theme"], lambda result, error: logger.info("before", result=result, error=error))
           .set([{"key": "theme", "value": "dark"}])
           .get(["theme", "missing"], lambda result, error: logger.info("after", result=result, error=error)))
    seq.wait(timeout=2)

    # Store goes away: every observer gets a close notice
    server.close()
    observer.close()
    hub.stop()

if __name__ == "__main__":
    main()
