import copy
import io
from datetime import datetime, timedelta

import pytest
from rich.console import Console

from spadmin.admin.dummy import DummyAdminApi, default_fixture
from spadmin.errors import AdminApiError, AmbiguousTargetError
from spadmin.models import ReportOptions, SearchApplicationHandle
from spadmin.search.reports import IndexReportPipeline, get_index_reports
from spadmin.settings import Settings


def _two_app_fixture(now):
    fixture = default_fixture(now=now)
    second = copy.deepcopy(fixture["search_applications"][0])
    second["identity"] = "second-ssa"
    second["name"] = "Search Two"
    second["constellation"] = "D4E5F6"
    fixture["search_applications"].append(second)
    return fixture


def _run(api, tmp_path, targets=None, options=ReportOptions(), now=None):
    buffer = io.StringIO()
    result = get_index_reports(
        api,
        targets,
        options,
        settings=Settings(temp_dir=str(tmp_path)),
        console=Console(file=buffer, width=300, color_system=None),
        now=now or datetime.now(),
    )
    return result, buffer.getvalue()


def test_single_target_resolved_implicitly(tmp_path):
    result, _ = _run(DummyAdminApi(), tmp_path, options=ReportOptions(return_raw_data_only=True))
    assert isinstance(result, SearchApplicationHandle)
    assert result.name == "Search Service Application"


def test_ambiguous_environment_produces_no_report(tmp_path):
    api = DummyAdminApi(_two_app_fixture(datetime.now()))
    with pytest.raises(AmbiguousTargetError) as info:
        _run(api, tmp_path)
    assert set(info.value.candidates) == {"Search Service Application", "Search Two"}


def test_batch_returns_mapping_by_name(tmp_path):
    api = DummyAdminApi(_two_app_fixture(datetime.now()))
    result, _ = _run(
        api, tmp_path, ["Search Service Application", "Search Two", "Missing"],
        ReportOptions(return_raw_data_only=True),
    )
    assert set(result) == {"Search Service Application", "Search Two"}


def test_failing_target_does_not_stop_batch(tmp_path, monkeypatch):
    api = DummyAdminApi(_two_app_fixture(datetime.now()))
    pipeline = IndexReportPipeline(api, settings=Settings(temp_dir=str(tmp_path)))
    original = pipeline.extractor.extract

    def flaky(handle, options, now=None):
        if handle.name == "Search Two":
            raise AdminApiError("host down", operation="merge_logs")
        return original(handle, options, now=now)

    monkeypatch.setattr(pipeline.extractor, "extract", flaky)
    result = pipeline.run(
        ["Search Two", "Search Service Application"], ReportOptions(return_raw_data_only=True)
    )
    assert isinstance(result, SearchApplicationHandle)
    assert result.name == "Search Service Application"


def test_skip_report_generation_populates_cache_only(tmp_path):
    api = DummyAdminApi()
    handle = api.list_search_applications()[0]
    result, out = _run(api, tmp_path, handle, ReportOptions(skip_report_generation=True))
    assert result is None
    assert out == ""
    assert handle.status is not None
    assert handle.report_time is not None


def test_rendered_report_contains_sections(tmp_path):
    _, out = _run(DummyAdminApi(), tmp_path, options=ReportOptions(detailed=True))
    assert "Index report: Search Service Application" in out
    assert "Index cells" in out
    assert "Index disk usage" in out
    assert "Master merge triggers" in out
    assert "Search administration health" in out


def test_collection_twice_is_idempotent(tmp_path):
    now = datetime.now()
    api = DummyAdminApi(default_fixture(now=now))
    handle = api.list_search_applications()[0]
    options = ReportOptions(detailed=True, return_raw_data_only=True, force_refresh=True)

    _run(api, tmp_path, handle, options, now=now)
    first = (handle.cell_reports, handle.disk_reports)
    merges = sum(1 for call in api.calls if call[0] == "merge_logs")

    _run(api, tmp_path, handle, options, now=now)
    assert (handle.cell_reports, handle.disk_reports) == first
    assert sum(1 for call in api.calls if call[0] == "merge_logs") == merges
    assert any(r.merge_events for r in handle.cell_reports)


def test_later_run_reads_fresh_window(tmp_path):
    first_now = datetime.now()
    api = DummyAdminApi(default_fixture(now=first_now))
    handle = api.list_search_applications()[0]
    options = ReportOptions(detailed=True, return_raw_data_only=True, force_refresh=True)
    _run(api, tmp_path, handle, options, now=first_now)

    later = first_now + timedelta(hours=2)
    api.fixture["logs"] = default_fixture(now=later)["logs"]
    _run(api, tmp_path, handle, options, now=later)

    merges = [call for call in api.calls if call[0] == "merge_logs"]
    assert len(merges) == 2
    assert merges[-1][2] == later - Settings().log_lookback
    assert handle.merge_events
    assert all(e.timestamp > first_now + timedelta(hours=1) for e in handle.merge_events)
    assert handle.merge_watermark == max(e.timestamp for e in handle.merge_events)
    cells = {r.component: r for r in handle.cell_reports}
    assert len(cells["IndexComponent1"].merge_events) == 2
    assert all(e.timestamp > later - timedelta(minutes=10) for e in cells["IndexComponent1"].merge_events)


def test_ambiguous_batch_item_is_skipped(tmp_path):
    api = DummyAdminApi(_two_app_fixture(datetime.now()))
    result, _ = _run(api, tmp_path, ["Search Two", 42], ReportOptions(return_raw_data_only=True))
    assert isinstance(result, SearchApplicationHandle)
    assert result.name == "Search Two"
