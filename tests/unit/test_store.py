"""Unit tests for the entity store."""

from __future__ import annotations

import pytest

from mkvbatch.errors import UnknownVideoError
from mkvbatch.models.external import ExternalFile, ExternalKind, Origin
from mkvbatch.models.media import VideoFile
from mkvbatch.services.matching import MatchMethod
from mkvbatch.store import EntityStore, StoreSnapshot


def _make_video(name: str) -> VideoFile:
    return VideoFile(id=name, path=f"/media/{name}.mkv", name=f"{name}.mkv")


def _make_ext(
    name: str,
    kind: ExternalKind = ExternalKind.SUBTITLE,
    *,
    origin: Origin = Origin.BULK,
) -> ExternalFile:
    return ExternalFile(id=name, path=f"/ext/{name}", kind=kind, origin=origin)


@pytest.fixture
def store() -> EntityStore:
    s = EntityStore()
    s.replace_videos([_make_video("Ep01"), _make_video("Ep02")])
    return s


# ---------------------------------------------------------------------------
# Revision
# ---------------------------------------------------------------------------


class TestRevision:
    def test_starts_at_zero(self) -> None:
        assert EntityStore().revision == 0

    def test_every_mutation_bumps(self, store: EntityStore) -> None:
        seen = [store.revision]
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep01.srt")])
        seen.append(store.revision)
        store.update_video(store.videos[0].model_copy(update={"name": "renamed"}))
        seen.append(store.revision)
        store.attach_per_file("Ep02", ExternalKind.AUDIO, [_make_ext("a.mka", ExternalKind.AUDIO)])
        seen.append(store.revision)
        store.remove_external(ExternalKind.SUBTITLE, "Ep01.srt")
        seen.append(store.revision)

        assert seen == sorted(set(seen))

    def test_reads_do_not_bump(self, store: EntityStore) -> None:
        before = store.revision
        store.videos
        store.externals(ExternalKind.AUDIO)
        store.match_report()
        store.snapshot()
        assert store.revision == before


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------


class TestVideos:
    def test_add_videos_skips_known_paths(self, store: EntityStore) -> None:
        store.add_videos([_make_video("Ep01"), _make_video("Ep03")])
        assert [v.id for v in store.videos] == ["Ep01", "Ep02", "Ep03"]

    def test_update_unknown_video_raises(self, store: EntityStore) -> None:
        with pytest.raises(UnknownVideoError) as exc_info:
            store.update_video(_make_video("nope"))
        assert exc_info.value.video_id == "nope"

    def test_update_videos_ignores_unknown(self, store: EntityStore) -> None:
        renamed = store.videos[1].model_copy(update={"name": "x"})
        store.update_videos([renamed, _make_video("ghost")])
        assert [v.name for v in store.videos] == ["Ep01.mkv", "x"]

    def test_videos_returns_copy_of_list(self, store: EntityStore) -> None:
        store.videos.clear()
        assert len(store.videos) == 2


# ---------------------------------------------------------------------------
# Matching integration
# ---------------------------------------------------------------------------


class TestMatchHealing:
    def test_bulk_files_resolved_on_add(self, store: EntityStore) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep02.srt")])
        assert store.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep02"

    def test_removing_video_heals_references(self, store: EntityStore) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep02.srt")])
        store.remove_video("Ep02")

        assert store.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep01"
        assert store.match_report(ExternalKind.SUBTITLE).positional

    def test_removed_video_loses_per_file_entries(self, store: EntityStore) -> None:
        store.attach_per_file("Ep02", ExternalKind.SUBTITLE, [_make_ext("x.srt")])
        store.remove_video("Ep02")
        store.add_videos([_make_video("Ep02")])
        assert store.per_file("Ep02", ExternalKind.SUBTITLE) == []

    def test_new_video_picks_up_unmatched_file(self, store: EntityStore) -> None:
        audio = [_make_ext(n, ExternalKind.AUDIO) for n in ("a", "b", "Ep03.mka")]
        store.add_externals(ExternalKind.AUDIO, audio)
        assert store.externals(ExternalKind.AUDIO)[2].matched_video_id is None

        store.add_videos([_make_video("Ep03")])

        assert store.externals(ExternalKind.AUDIO)[2].matched_video_id == "Ep03"

    def test_match_report_by_kind(self, store: EntityStore) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("x.srt")])
        store.add_externals(ExternalKind.CHAPTER, [_make_ext("Ep02.xml", ExternalKind.CHAPTER)])

        assert store.match_report(ExternalKind.SUBTITLE).entries[0].method == MatchMethod.POSITIONAL
        assert [e.method for e in store.match_report().entries] == [
            MatchMethod.POSITIONAL,
            MatchMethod.NAME,
        ]

    def test_bulk_list_forces_bulk_origin(self, store: EntityStore) -> None:
        store.replace_externals(
            ExternalKind.SUBTITLE, [_make_ext("Ep01.srt", origin=Origin.PER_FILE)]
        )
        ext = store.externals(ExternalKind.SUBTITLE)[0]
        assert ext.origin == Origin.BULK
        assert ext.matched_video_id == "Ep01"

    def test_update_external_re_resolves(self, store: EntityStore) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep01.srt")])
        ext = store.externals(ExternalKind.SUBTITLE)[0]

        store.update_external(ext.model_copy(update={"matched_video_id": "Ep02"}))

        assert store.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep02"

    def test_reassigned_match_is_kept_after_video_changes(self, store: EntityStore) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep01.srt")])
        ext = store.externals(ExternalKind.SUBTITLE)[0]
        store.update_external(ext.model_copy(update={"matched_video_id": "Ep02"}))

        store.add_videos([_make_video("Ep03")])

        assert store.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep02"
        assert store.match_report().entries[0].method == MatchMethod.EXPLICIT

    def test_positional_match_still_reported_after_later_changes(
        self, store: EntityStore
    ) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("x.srt")])

        store.add_videos([_make_video("Ep03")])
        store.add_externals(ExternalKind.AUDIO, [_make_ext("y.mka", ExternalKind.AUDIO)])

        positional = store.match_report(ExternalKind.SUBTITLE).positional
        assert [e.file_id for e in positional] == ["x.srt"]


class TestOrderIndependence:
    """The same final lists resolve identically however they were built."""

    def test_video_added_after_files(self) -> None:
        videos_first = EntityStore()
        videos_first.add_videos([_make_video("Ep01"), _make_video("Ep02")])
        videos_first.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep02.srt")])

        files_first = EntityStore()
        files_first.add_videos([_make_video("Ep01")])
        files_first.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep02.srt")])
        files_first.add_videos([_make_video("Ep02")])

        for s in (videos_first, files_first):
            assert s.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep02"
            assert s.match_report().entries[0].method == MatchMethod.NAME

    def test_files_added_one_by_one(self) -> None:
        names = ["x.srt", "Ep02.srt", "y.srt"]
        at_once = EntityStore()
        at_once.replace_videos([_make_video("Ep01"), _make_video("Ep02")])
        at_once.add_externals(ExternalKind.SUBTITLE, [_make_ext(n) for n in names])

        stepwise = EntityStore()
        stepwise.replace_videos([_make_video("Ep02")])
        for n in names:
            stepwise.add_externals(ExternalKind.SUBTITLE, [_make_ext(n)])
        stepwise.replace_videos([_make_video("Ep01"), _make_video("Ep02")])

        def outcome(s: EntityStore) -> list[tuple[str | None, MatchMethod]]:
            return [(e.video_id, e.method) for e in s.match_report().entries]

        assert outcome(stepwise) == outcome(at_once)
        assert outcome(at_once) == [
            ("Ep01", MatchMethod.POSITIONAL),
            ("Ep02", MatchMethod.NAME),
            (None, MatchMethod.UNMATCHED),
        ]


# ---------------------------------------------------------------------------
# Per-file attachments
# ---------------------------------------------------------------------------


class TestPerFile:
    def test_attach_forces_origin_and_owner(self, store: EntityStore) -> None:
        store.attach_per_file("Ep01", ExternalKind.SUBTITLE, [_make_ext("x.srt")])

        files = store.per_file("Ep01", ExternalKind.SUBTITLE)
        assert files[0].origin == Origin.PER_FILE
        assert files[0].matched_video_id == "Ep01"

    def test_attach_appends_replace_overwrites(self, store: EntityStore) -> None:
        store.attach_per_file("Ep01", ExternalKind.SUBTITLE, [_make_ext("x.srt")])
        store.attach_per_file("Ep01", ExternalKind.SUBTITLE, [_make_ext("y.srt")])
        assert [f.id for f in store.per_file("Ep01", ExternalKind.SUBTITLE)] == ["x.srt", "y.srt"]

        store.replace_per_file("Ep01", ExternalKind.SUBTITLE, [_make_ext("z.srt")])
        assert [f.id for f in store.per_file("Ep01", ExternalKind.SUBTITLE)] == ["z.srt"]

    def test_unknown_video_raises(self, store: EntityStore) -> None:
        with pytest.raises(UnknownVideoError):
            store.attach_per_file("ghost", ExternalKind.AUDIO, [])
        with pytest.raises(UnknownVideoError):
            store.replace_per_file("ghost", ExternalKind.AUDIO, [])


# ---------------------------------------------------------------------------
# Session import/export
# ---------------------------------------------------------------------------


class TestSnapshot:
    def test_round_trip_through_json(self, store: EntityStore) -> None:
        store.add_externals(ExternalKind.SUBTITLE, [_make_ext("Ep02.srt")])
        store.attach_per_file("Ep01", ExternalKind.AUDIO, [_make_ext("a.mka", ExternalKind.AUDIO)])

        raw = store.snapshot().model_dump_json(by_alias=True)
        restored = EntityStore.from_snapshot(StoreSnapshot.model_validate_json(raw))

        assert [v.id for v in restored.videos] == ["Ep01", "Ep02"]
        assert restored.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep02"
        assert [f.id for f in restored.per_file("Ep01", ExternalKind.AUDIO)] == ["a.mka"]

    def test_per_file_of_unknown_video_dropped(self) -> None:
        snapshot = StoreSnapshot(
            videos=[_make_video("Ep01")],
            per_video={"ghost": {ExternalKind.SUBTITLE: [_make_ext("x.srt")]}},
        )
        restored = EntityStore.from_snapshot(snapshot)
        assert restored.per_file("ghost", ExternalKind.SUBTITLE) == []

    def test_stale_bulk_reference_healed_on_load(self) -> None:
        ext = _make_ext("Ep01.srt").model_copy(update={"matched_video_id": "gone"})
        snapshot = StoreSnapshot(
            videos=[_make_video("Ep01")],
            externals={ExternalKind.SUBTITLE: [ext]},
        )
        restored = EntityStore.from_snapshot(snapshot)
        assert restored.externals(ExternalKind.SUBTITLE)[0].matched_video_id == "Ep01"
