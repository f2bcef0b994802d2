from __future__ import annotations

import threading

import pytest

from opencast_bridge.config import OpencastConfigError
from opencast_bridge.integrations.opencast.client import OpencastEpisode, OpencastSeries
from opencast_bridge.integrations.opencast.transport import OpencastTransportError
from opencast_bridge.models.series_mappings import SeriesMapping
from opencast_bridge.utils import course_choices as mod
from opencast_bridge.utils.course_choices import ALL_VIDEOS_KEY, build_course_choices, series_choice_key


class _FakeCatalog:
    """Series and episode data per instance; failing series ids raise a transport error."""

    def __init__(
        self,
        instance_id: int,
        series: dict[str, str],
        episodes: dict[str, list[tuple[str, str]] | None],
        failing: set[str] | None = None,
    ) -> None:
        self.instance_id = instance_id
        self._series = series
        self._episodes = episodes
        self._failing = failing or set()
        self.calls: list[tuple[str, str]] = []

    def get_series(self, series_id: str) -> OpencastSeries | None:
        self.calls.append(("series", series_id))
        if series_id in self._failing:
            raise OpencastTransportError("Opencast request failed: timed out")
        title = self._series.get(series_id)
        if title is None:
            return None
        return OpencastSeries(identifier=series_id, title=title)

    def list_episodes_in_series(self, series_id: str) -> list[OpencastEpisode] | None:
        self.calls.append(("episodes", series_id))
        items = self._episodes.get(series_id, [])
        if items is None:
            return None
        return [OpencastEpisode(identifier=i, title=t, is_part_of=series_id) for i, t in items]


def _mapping(series: str, instance: int = 1, course: int = 7) -> SeriesMapping:
    return SeriesMapping(course_id=course, ocinstanceid=instance, series=series)


def test_partial_results_when_one_series_is_missing() -> None:
    catalog = _FakeCatalog(
        1,
        series={"series-a": "Lecture 1"},
        episodes={"series-a": [("ep-2", "Second session"), ("ep-1", "First session")]},
    )

    choices = build_course_choices(
        [_mapping("series-a"), _mapping("series-b")],
        client_factory=lambda _instance: catalog,
        all_videos_label="All videos",
    )

    key = "series-a_1"
    assert choices.series_choices == {key: "Lecture 1"}
    assert list(choices.episode_choices) == [key]
    assert list(choices.episode_choices[key].items()) == [
        (ALL_VIDEOS_KEY, "All videos"),
        ("ep-2", "Second session"),
        ("ep-1", "First session"),
    ]
    # Episodes are not requested for a series that was not found.
    assert ("episodes", "series-b") not in catalog.calls


def test_empty_input_yields_empty_mappings() -> None:
    choices = build_course_choices([], client_factory=lambda _instance: pytest.fail("no client expected"))
    assert choices.series_choices == {}
    assert choices.episode_choices == {}
    assert choices.to_dict() == {"series": {}, "episodes": {}}


def test_keys_include_instance_and_follow_input_order() -> None:
    catalogs = {
        1: _FakeCatalog(1, series={"s-z": "Zoology", "s-a": "Anatomy"}, episodes={}),
        2: _FakeCatalog(2, series={"s-a": "Anatomy (archive)"}, episodes={}),
    }

    choices = build_course_choices(
        [_mapping("s-z", 1), _mapping("s-a", 2), _mapping("s-a", 1)],
        client_factory=catalogs.__getitem__,
    )

    assert list(choices.series_choices.items()) == [
        ("s-z_1", "Zoology"),
        ("s-a_2", "Anatomy (archive)"),
        ("s-a_1", "Anatomy"),
    ]
    assert series_choice_key("s-a", 2) == "s-a_2"


def test_series_with_unavailable_episode_list_keeps_only_sentinel() -> None:
    catalog = _FakeCatalog(1, series={"s1": "Physics"}, episodes={"s1": None})
    choices = build_course_choices([_mapping("s1")], client_factory=lambda _i: catalog, all_videos_label="Alle")
    assert choices.episode_choices == {"s1_1": {ALL_VIDEOS_KEY: "Alle"}}


def test_abort_policy_propagates_transport_failure() -> None:
    catalog = _FakeCatalog(1, series={"ok": "Fine"}, episodes={}, failing={"down"})
    with pytest.raises(OpencastTransportError):
        build_course_choices([_mapping("ok"), _mapping("down")], client_factory=lambda _i: catalog)


def test_skip_policy_drops_only_the_failing_series(caplog: pytest.LogCaptureFixture) -> None:
    catalog = _FakeCatalog(1, series={"ok": "Fine", "later": "Later"}, episodes={}, failing={"down"})

    with caplog.at_level("WARNING", logger=mod.__name__):
        choices = build_course_choices(
            [_mapping("ok"), _mapping("down"), _mapping("later")],
            client_factory=lambda _i: catalog,
            error_policy="skip",
        )

    assert list(choices.series_choices) == ["ok_1", "later_1"]
    assert any("down" in record.getMessage() for record in caplog.records)


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_course_choices([], client_factory=lambda _i: None, error_policy="retry")  # type: ignore[arg-type]


def test_concurrent_fetch_preserves_input_order() -> None:
    release_first = threading.Event()

    class _SlowFirstCatalog(_FakeCatalog):
        def get_series(self, series_id: str) -> OpencastSeries | None:
            if series_id == "first":
                release_first.wait(timeout=5)
            else:
                release_first.set()
            return super().get_series(series_id)

    def factory(instance_id: int) -> _FakeCatalog:
        return _SlowFirstCatalog(
            instance_id,
            series={"first": "First", "second": "Second", "third": "Third"},
            episodes={"first": [("e1", "Only")]},
        )

    choices = build_course_choices(
        [_mapping("first"), _mapping("second"), _mapping("third")],
        client_factory=factory,
        max_workers=3,
    )

    assert list(choices.series_choices) == ["first_1", "second_1", "third_1"]
    assert list(choices.episode_choices["first_1"]) == [ALL_VIDEOS_KEY, "e1"]


def test_load_course_choices_reads_mappings(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict = {}

    def fake_fetch(db, *, course_id: int):  # noqa: ANN001
        seen["db"] = db
        seen["course_id"] = course_id
        return [_mapping("s1", course=course_id)]

    monkeypatch.setattr(mod, "fetch_series_mappings_for_course", fake_fetch)
    catalog = _FakeCatalog(1, series={"s1": "Chemistry"}, episodes={"s1": [("e1", "Atoms")]})

    choices = mod.load_course_choices("db-handle", 42, client_factory=lambda _i: catalog)  # type: ignore[arg-type]

    assert seen == {"db": "db-handle", "course_id": 42}
    assert choices.to_dict() == {
        "series": {"s1_1": "Chemistry"},
        "episodes": {"s1_1": {ALL_VIDEOS_KEY: "All videos", "e1": "Atoms"}},
    }


def test_concurrent_skip_policy_isolates_failing_series() -> None:
    def factory(instance_id: int) -> _FakeCatalog:
        return _FakeCatalog(
            instance_id,
            series={"ok": "Fine", "later": "Later"},
            episodes={"later": [("e1", "Only")]},
            failing={"down"},
        )

    choices = build_course_choices(
        [_mapping("ok"), _mapping("down"), _mapping("later")],
        client_factory=factory,
        error_policy="skip",
        max_workers=3,
    )

    assert list(choices.series_choices) == ["ok_1", "later_1"]
    assert choices.episode_choices["later_1"] == {ALL_VIDEOS_KEY: "All videos", "e1": "Only"}


def test_concurrent_abort_policy_propagates_transport_failure() -> None:
    def factory(instance_id: int) -> _FakeCatalog:
        return _FakeCatalog(instance_id, series={"ok": "Fine"}, episodes={}, failing={"down"})

    with pytest.raises(OpencastTransportError):
        build_course_choices(
            [_mapping("ok"), _mapping("down")],
            client_factory=factory,
            max_workers=2,
        )


def test_concurrent_abort_cancels_queued_series() -> None:
    release = threading.Event()
    catalog_calls: list[str] = []

    class _BlockingCatalog(_FakeCatalog):
        def get_series(self, series_id: str) -> OpencastSeries | None:
            catalog_calls.append(series_id)
            if series_id.startswith("slow"):
                release.wait(timeout=1)
            return super().get_series(series_id)

    def factory(instance_id: int) -> _FakeCatalog:
        return _BlockingCatalog(
            instance_id,
            series={"slow-1": "Slow", "slow-2": "Slow too", "tail": "Tail"},
            episodes={},
            failing={"down"},
        )

    with pytest.raises(OpencastTransportError):
        build_course_choices(
            [_mapping("down"), _mapping("slow-1"), _mapping("slow-2"), _mapping("tail")],
            client_factory=factory,
            max_workers=2,
        )

    # Both workers are busy with the slow series when the failure surfaces, so
    # the last mapping is still queued and gets cancelled.
    assert "tail" not in catalog_calls


def test_concurrent_fetch_builds_clients_on_calling_thread() -> None:
    caller = threading.get_ident()
    factory_threads: list[int] = []

    def factory(instance_id: int) -> _FakeCatalog:
        factory_threads.append(threading.get_ident())
        catalog = _FakeCatalog(instance_id, series={"a": "A", "b": "B", "c": "C"}, episodes={})
        return catalog

    choices = build_course_choices(
        [_mapping("a"), _mapping("b"), _mapping("c")],
        client_factory=factory,
        max_workers=3,
    )

    assert list(choices.series_choices) == ["a_1", "b_1", "c_1"]
    assert factory_threads == [caller, caller, caller]


def _unconfigured_factory(catalog: _FakeCatalog):  # noqa: ANN202
    def factory(instance_id: int) -> _FakeCatalog:
        if instance_id != catalog.instance_id:
            raise OpencastConfigError(f"Opencast instance {instance_id} is not configured.")
        return catalog

    return factory


@pytest.mark.parametrize("max_workers", [1, 2])
def test_skip_policy_drops_mapping_on_unconfigured_instance(max_workers: int) -> None:
    catalog = _FakeCatalog(1, series={"s1": "Physics", "s2": "Biology"}, episodes={})

    choices = build_course_choices(
        [_mapping("s1", 1), _mapping("s9", 9), _mapping("s2", 1)],
        client_factory=_unconfigured_factory(catalog),
        error_policy="skip",
        max_workers=max_workers,
    )

    assert list(choices.series_choices) == ["s1_1", "s2_1"]


@pytest.mark.parametrize("max_workers", [1, 2])
def test_abort_policy_raises_on_unconfigured_instance(max_workers: int) -> None:
    catalog = _FakeCatalog(1, series={"s1": "Physics"}, episodes={})

    with pytest.raises(OpencastConfigError):
        build_course_choices(
            [_mapping("s1", 1), _mapping("s9", 9)],
            client_factory=_unconfigured_factory(catalog),
            max_workers=max_workers,
        )
