from lab_results.parsers.matcher import OrderLineMatcher
from lab_results.parsers.models import Order, OrderLine, OrderLineSource
from lab_results.services.repository import InMemoryRepository


def make_repo():
    repo = InMemoryRepository()
    repo.add_order(
        Order(id=1, patient_id=10),
        [OrderLine(1, "X", "Test X", 1), OrderLine(1, "X", "Test X", 2), OrderLine(1, "Y", "Y", 3)],
    )
    return repo


def test_repeated_code_follows_order_then_wraps():
    m = OrderLineMatcher(make_repo())
    assert m.match(1, "X").sequence == 1
    assert m.match(1, "X").sequence == 2
    # no quedan líneas con seq > 2: vuelve a la menor
    assert m.match(1, "X").sequence == 1


def test_codes_are_tracked_independently():
    m = OrderLineMatcher(make_repo())
    assert m.match(1, "X").sequence == 1
    assert m.match(1, "Y").sequence == 3
    assert m.match(1, "X").sequence == 2


def test_unknown_code_creates_adhoc_line():
    repo = make_repo()
    m = OrderLineMatcher(repo)
    line = m.match(1, "Z", "Reflex Z")
    assert line.sequence == 4
    assert line.source == OrderLineSource.ADDED
    assert line.procedure_name == "Reflex Z"
    # la segunda vez ya existe y no se vuelve a crear
    assert m.match(1, "Z").sequence == 4
    assert len([ln for ln in repo.order_lines if ln.procedure_code == "Z"]) == 1


def test_reset_restarts_tracking():
    m = OrderLineMatcher(make_repo())
    m.match(1, "X")
    m.reset()
    assert m.match(1, "X").sequence == 1
