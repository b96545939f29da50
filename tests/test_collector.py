from datetime import datetime, timedelta

from spadmin.admin.dummy import DummyAdminApi, default_fixture
from spadmin.models import ComponentState, HealthEntry, ReportOptions
from spadmin.search.collector import StatusCollector, extract_metrics
from spadmin.settings import Settings


NOW = datetime(2024, 5, 1, 12, 0, 0)


def _collector(fixture=None):
    api = DummyAdminApi(fixture if fixture is not None else default_fixture(now=NOW))
    return api, StatusCollector(api, Settings())


def test_components_are_split_by_state():
    api, collector = _collector()
    handle = api.list_search_applications()[0]

    cached = collector.collect(handle, ReportOptions(), now=NOW)

    assert cached is False
    assert [c.name for c in handle.known_components] == ["AdminComponent1", "IndexComponent1"]
    assert [c.name for c in handle.unknown_components] == ["IndexComponent2"]
    assert all(c.state is ComponentState.UNKNOWN for c in handle.unknown_components)
    assert handle.status_checked_at == NOW


def test_metrics_extracted_from_health_report():
    api, collector = _collector()
    handle = api.list_search_applications()[0]
    collector.collect(handle, ReportOptions(), now=NOW)

    index = handle.known_components[1]
    assert index.metrics == {"active_documents": 125000, "checkpoint_size": 4096, "generation_id": 5123}
    admin = handle.known_components[0]
    assert admin.metrics == {"active_documents": 0, "checkpoint_size": 0, "generation_id": 0}


def test_extract_metrics_matches_prefix_case_insensitively():
    entries = [
        HealthEntry("COUNT OF ACTIVE DOCUMENTS (IndexComponent1)", "1,234"),
        HealthEntry("Checkpoint size on disk", "n/a"),
    ]
    assert extract_metrics(entries) == {"active_documents": 1234, "checkpoint_size": 0, "generation_id": 0}


def test_unreachable_topology_leaves_status_empty():
    fixture = default_fixture(now=NOW)
    fixture["search_applications"][0]["unavailable"] = True
    api, collector = _collector(fixture)
    handle = api.list_search_applications()[0]

    collector.collect(handle, ReportOptions(), now=NOW)

    assert handle.status is None
    assert handle.topology is None
    assert handle.known_components == ()


def test_status_reused_inside_staleness_window():
    api, collector = _collector()
    handle = api.list_search_applications()[0]
    collector.collect(handle, ReportOptions(), now=NOW)
    topology_calls = sum(1 for call in api.calls if call[0] == "get_topology")

    assert collector.collect(handle, ReportOptions(), now=NOW + timedelta(minutes=5)) is True
    assert sum(1 for call in api.calls if call[0] == "get_topology") == topology_calls

    assert collector.collect(handle, ReportOptions(), now=NOW + timedelta(minutes=16)) is False
    assert sum(1 for call in api.calls if call[0] == "get_topology") == topology_calls + 1


def test_force_refresh_bypasses_cache():
    api, collector = _collector()
    handle = api.list_search_applications()[0]
    collector.collect(handle, ReportOptions(), now=NOW)
    assert collector.collect(handle, ReportOptions(force_refresh=True), now=NOW) is False
