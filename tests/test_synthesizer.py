from datetime import datetime, timedelta

from spadmin.admin.dummy import DummyAdminApi, default_fixture
from spadmin.models import HealthEntry, MergeEvent, ReportOptions
from spadmin.search.collector import StatusCollector
from spadmin.search.synthesizer import (
    ReportSynthesizer,
    events_in_window,
    parse_merge_entry,
    to_unc,
)
from spadmin.settings import Settings


NOW = datetime(2024, 5, 1, 12, 0, 0)
MB = 1024 * 1024


def _event(component: str, minutes_before: float, group: str = "default") -> MergeEvent:
    return MergeEvent(
        timestamp=NOW - timedelta(minutes=minutes_before),
        component=component,
        update_group=group,
        total=100,
        master=50,
        ratio=50.0,
        target_ratio=50.0,
    )


def _collected(fixture=None, options=ReportOptions()):
    api = DummyAdminApi(fixture if fixture is not None else default_fixture(now=NOW))
    settings = Settings()
    handle = api.list_search_applications()[0]
    StatusCollector(api, settings).collect(handle, options, now=NOW)
    return api, ReportSynthesizer(api, settings), handle


def test_unknown_component_never_gets_a_cell_report():
    _, synthesizer, handle = _collected()
    synthesizer.synthesize(handle, ReportOptions())

    names = [r.component for r in handle.cell_reports]
    assert "IndexComponent2" not in names
    assert names == ["AdminComponent1", "IndexComponent1"]


def test_cell_report_fields_are_coerced():
    _, synthesizer, handle = _collected()
    synthesizer.synthesize(handle, ReportOptions())

    cell = handle.cell_reports[1]
    assert cell.partition == 0
    assert cell.primary is True
    assert cell.cell == 0
    assert cell.merge_running is False
    assert cell.active_documents == 125000
    assert cell.server == "SP-IDX01"
    assert cell.process is not None and cell.process.pid == 4242


def test_parse_merge_entry_uses_third_dotted_segment():
    running, cell = parse_merge_entry([
        HealthEntry("Count of active documents", "10"),
        HealthEntry("Master Merge Running (SP9f8e7d.3.2)", "True"),
    ])
    assert running is True
    assert cell == 2
    assert parse_merge_entry([]) == (False, None)


def test_merge_events_limited_to_trailing_window_and_component():
    events = [
        _event("IndexComponent1", 0),
        _event("IndexComponent1", 10),
        _event("IndexComponent1", 11),
        _event("IndexComponent10", 1),
        _event("IndexComponent2", 1),
    ]
    kept = events_in_window(events, "IndexComponent1", NOW, timedelta(minutes=10))
    assert kept == (events[0], events[1])
    assert events_in_window(events, "IndexComponent1", None, timedelta(minutes=10)) == ()


def test_cell_reports_attach_window_events_before_check_time():
    _, synthesizer, handle = _collected()
    inside = _event("IndexComponent1", 3)
    outside = _event("IndexComponent1", 25)
    other = _event("IndexComponent2", 1)
    handle.merge_events = (inside, outside, other)
    handle.merge_watermark = NOW

    synthesizer.synthesize(handle, ReportOptions(), now=NOW)

    by_name = {r.component: r for r in handle.cell_reports}
    assert by_name["IndexComponent1"].merge_events == (inside,)
    assert by_name["AdminComponent1"].merge_events == ()


def test_stale_watermark_does_not_anchor_window():
    _, synthesizer, handle = _collected()
    recent = _event("IndexComponent1", 2)
    handle.merge_events = (recent,)
    handle.merge_watermark = NOW - timedelta(hours=2)

    synthesizer.synthesize(handle, ReportOptions(), now=NOW)

    by_name = {r.component: r for r in handle.cell_reports}
    assert by_name["IndexComponent1"].merge_events == (recent,)


def test_check_time_falls_back_to_status_time():
    _, synthesizer, handle = _collected()
    assert synthesizer.check_time(handle) == NOW
    assert synthesizer.check_time(handle, NOW + timedelta(hours=1)) == NOW + timedelta(hours=1)


def test_zero_sized_disk_report_is_dropped():
    fixture = default_fixture(now=NOW)
    fixture["hosts"]["SP-IDX02"]["volumes"]["C"] = [900 * 1024**3, 1000 * 1024**3]
    _, synthesizer, handle = _collected(fixture)

    synthesizer.synthesize(handle, ReportOptions(include_disk_reports=True))

    assert [d.component for d in handle.disk_reports] == ["IndexComponent1"]
    disk = handle.disk_reports[0]
    assert disk.size == 320 * MB
    assert disk.size_mb == 320.0
    assert disk.path.endswith(r"\IndexComponent1\SPA1B2C3.0.0-20240101")
    assert disk.free_space == 80 * 1024**3


def test_disk_reports_only_when_requested():
    _, synthesizer, handle = _collected()
    synthesizer.synthesize(handle, ReportOptions())
    assert handle.disk_reports == ()


def test_lexicographically_last_cell_folder_is_measured():
    fixture = default_fixture(now=NOW)
    files = fixture["hosts"]["SP-IDX01"]["files"]
    base = next(iter(files)).rsplit("\\", 2)[0]
    files[base + r"\SPA1B2C3.0.0-20240301\index.dat"] = 5 * MB
    _, synthesizer, handle = _collected(fixture)

    synthesizer.synthesize(handle, ReportOptions(detailed=True))

    assert handle.disk_reports[0].path == base + r"\SPA1B2C3.0.0-20240301"
    assert handle.disk_reports[0].size == 5 * MB


def test_explicit_root_directory_is_mapped_to_admin_share():
    assert to_unc("SP-IDX01", r"E:\SearchIndex", r"\\{server}\{drive}$\{path}") == (
        r"\\SP-IDX01\E$\SearchIndex",
        "E",
    )
    assert to_unc("X", r"\\SP-IDX01\D$\Idx", r"\\{server}\{drive}$\{path}") == (r"\\SP-IDX01\D$\Idx", "D")


def test_process_refresh_reads_host_again():
    api, synthesizer, handle = _collected()
    ref = synthesizer.correlate_processes(handle)["IndexComponent1"]

    api.fixture["hosts"]["SP-IDX01"]["processes"][0]["command_line"] = "noderunner --addstartargs IndexComponent1 --new"
    refreshed = ref.refresh(api)
    assert refreshed is not None
    assert refreshed.command_line.endswith("--new")

    api.fixture["hosts"]["SP-IDX01"]["processes"] = []
    assert ref.refresh(api) is None


def test_synthesis_is_repeatable():
    _, synthesizer, handle = _collected()
    options = ReportOptions(detailed=True)
    synthesizer.synthesize(handle, options)
    first = (handle.cell_reports, handle.disk_reports)
    synthesizer.synthesize(handle, options)
    assert (handle.cell_reports, handle.disk_reports) == first
