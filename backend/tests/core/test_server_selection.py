"""Server Selection — tests for the least-utilization choice and capacity arithmetic."""

from cctv_api.core.server_selection import (
    ServerCapacity, capacity_status, counter_type_id, has_capacity, select_best_server,
)


def _server(id, max_capacity, current):
    return ServerCapacity(
        id=id, ip=f"10.0.0.{id}", description=None,
        max_activity_monitoring=max_capacity, cur_activity_monitoring=current,
    )


def test_lowest_utilization_wins():
    servers = [_server(1, 10, 8), _server(2, 10, 2), _server(3, 10, 5)]
    assert select_best_server(servers, 1).id == 2


def test_tie_broken_by_available_capacity():
    servers = [_server(1, 10, 5), _server(2, 20, 10)]
    assert select_best_server(servers, 1).id == 2


def test_full_servers_skipped():
    servers = [_server(1, 4, 4), _server(2, 4, 3)]
    assert select_best_server(servers, 1).id == 2


def test_required_capacity_respected():
    servers = [_server(1, 4, 3)]
    assert select_best_server(servers, 1, required_capacity=2) is None


def test_excluded_server_never_chosen():
    servers = [_server(1, 10, 0), _server(2, 10, 5)]
    assert select_best_server(servers, 1, exclude_server_ids=[1]).id == 2


def test_zero_max_skipped_for_activity_monitoring():
    servers = [_server(1, 0, -1)]
    assert select_best_server(servers, 1) is None


def test_no_servers_returns_none():
    assert select_best_server([], 1) is None


def test_utilization_zero_when_max_zero():
    assert _server(1, 0, 0).utilization_percentage == 0.0


def test_has_capacity_only_limits_activity_monitoring():
    full = _server(1, 2, 2)
    assert has_capacity(full, 1) is False
    assert has_capacity(full, 3) is True


def test_customer_service_time_shares_activity_counters():
    assert counter_type_id(1) == 1
    assert counter_type_id(2) == 1
    assert counter_type_id(3) == 3


def test_capacity_status_buckets():
    assert capacity_status(10, 10) == "full"
    assert capacity_status(10, 9) == "high"
    assert capacity_status(10, 8) == "available"
    assert capacity_status(0, 0) == "full"
