from harvester.context import CrawlContext


class _Session:
    def __init__(self, fail=False):
        self.closed = False
        self.fail = fail

    def close(self):
        self.closed = True
        if self.fail:
            raise RuntimeError("already gone")


def test_request_stop_keeps_first_reason():
    context = CrawlContext()
    assert not context.stopped

    context.request_stop("SIGINT")
    context.request_stop("SIGTERM")

    assert context.stopped
    assert context.stop_reason == "SIGINT"


def test_wait_returns_immediately_when_stopped():
    context = CrawlContext()
    context.request_stop()

    assert context.wait(60) is True
    assert context.wait(0) is True


def test_wait_zero_without_stop():
    assert CrawlContext().wait(0) is False


def test_release_session_closes_once():
    context = CrawlContext()
    session = _Session()
    context.attach_session(session)

    context.release_session()
    context.release_session()

    assert session.closed
    assert context.session is None


def test_release_session_survives_close_error():
    context = CrawlContext()
    session = _Session(fail=True)
    context.attach_session(session)

    context.release_session()

    assert session.closed
    assert context.session is None
