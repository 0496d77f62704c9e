"""Tests for the batch driver: threshold policy, relocation and isolation of failures."""

import logging

import pytest
from PIL import Image

from imagecomparer import batch
from imagecomparer.batch import load_folder, run_batch, should_relocate
from imagecomparer.config import Options
from imagecomparer.errors import DecodeError
from imagecomparer.region import Rectangle

from conftest import BLUE, half_and_half, save, solid


def make_options(ref, comp, out, **kw):
    return Options(reference_image=ref, comparison_folder=comp, output_folder=out, **kw)


def by_name(results):
    return {r.path.name: r for r in results}


class TestShouldRelocate:
    def test_zero_threshold_disables(self):
        assert should_relocate(1.0, 0.0) is False

    def test_strictly_greater(self):
        assert should_relocate(0.5, 0.5) is False
        assert should_relocate(0.5 + 1e-9, 0.5) is True
        assert should_relocate(0.4, 0.5) is False


class TestLoadFolder:
    def test_corrupt_file_is_skipped_and_logged(self, dirs, caplog):
        _, comp, _ = dirs
        save(solid(), comp / "1.png")
        (comp / "2.png").write_bytes(b"\x89PNG garbage")
        save(solid(), comp / "3.png")

        with caplog.at_level(logging.INFO, logger="imagecomparer"):
            candidates, unreadable = load_folder(comp)

        assert [c.path.name for c in candidates] == ["1.png", "3.png"]
        assert [u.path.name for u in unreadable] == ["2.png"]
        assert unreadable[0].status == batch.UNREADABLE
        assert "Ignoring: 2.png" in caplog.text
        assert "File found: 1.png" in caplog.text


class TestRunBatch:
    def test_decode_failure_does_not_abort(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "1.png")
        (comp / "2.png").write_text("not an image")
        save(solid(), comp / "3.png")

        res = by_name(run_batch(make_options(ref, comp, out, match_threshold=0.9)))
        assert res["1.png"].status == batch.RELOCATED
        assert res["2.png"].status == batch.UNREADABLE
        assert res["3.png"].status == batch.RELOCATED
        assert sorted(p.name for p in out.iterdir()) == ["1.png", "3.png"]

    def test_zero_threshold_never_relocates(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "same.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.0))
        assert [r.status for r in results] == [batch.DISABLED]
        assert results[0].match_ratio == 1.0
        assert list(out.iterdir()) == []
        assert (comp / "same.png").exists()

    def test_ratio_equal_to_threshold_stays(self, dirs):
        ref, comp, out = dirs
        save(half_and_half(), comp / "half.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.5))
        assert results[0].match_ratio == 0.5
        assert results[0].status == batch.BELOW_THRESHOLD
        assert (comp / "half.png").exists()

    def test_ratio_above_threshold_moves(self, dirs):
        ref, comp, out = dirs
        save(half_and_half(), comp / "half.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.49))
        assert results[0].status == batch.RELOCATED
        assert results[0].destination == out / "half.png"
        assert not (comp / "half.png").exists()
        assert (out / "half.png").exists()

    def test_copy_keeps_source(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "a.png")
        run_batch(make_options(ref, comp, out, match_threshold=0.5, copy=True))
        assert (comp / "a.png").exists()
        assert (out / "a.png").exists()

    def test_output_filename_template(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "photo.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.5,
                                         output_filename="Joe - <o><e>"))
        assert results[0].destination == out / "Joe - photo.png"
        assert (out / "Joe - photo.png").exists()

    def test_rectangle_is_used(self, dirs):
        ref, comp, out = dirs
        save(half_and_half(), comp / "half.png")
        opts = make_options(ref, comp, out, match_threshold=0.99, copy=True,
                            rectangle=Rectangle(0, 0, 2, 4))
        results = run_batch(opts)
        assert results[0].match_ratio == 1.0
        assert results[0].status == batch.RELOCATED

    def test_out_of_bounds_candidate_is_skipped(self, dirs, caplog):
        ref, comp, out = dirs
        save(solid((2, 2)), comp / "a_small.png")
        save(solid(), comp / "b_ok.png")
        opts = make_options(ref, comp, out, match_threshold=0.5, rectangle=Rectangle(0, 0, 3, 3))
        with caplog.at_level(logging.ERROR, logger="imagecomparer"):
            res = by_name(run_batch(opts))
        assert res["a_small.png"].status == batch.OUT_OF_BOUNDS
        assert res["a_small.png"].match_ratio is None
        assert res["b_ok.png"].status == batch.RELOCATED
        assert "a_small.png" in caplog.text

    def test_candidate_larger_than_reference(self, dirs):
        """Without a rectangle, the candidate's own bounds are used."""
        ref, comp, out = dirs
        save(solid((8, 8)), comp / "big.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.5))
        assert results[0].status == batch.OUT_OF_BOUNDS
        assert "reference" in results[0].error

    def test_collision_is_reported_and_batch_continues(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "a.png")
        save(solid(), comp / "b.png")
        (out / "a.png").write_bytes(b"existing")

        res = by_name(run_batch(make_options(ref, comp, out, match_threshold=0.5)))
        assert res["a.png"].status == batch.RELOCATE_FAILED
        assert "already exists" in res["a.png"].error
        assert (comp / "a.png").exists()
        assert (out / "a.png").read_bytes() == b"existing"
        assert res["b.png"].status == batch.RELOCATED

    def test_rename_on_conflict(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "a.png")
        (out / "a.png").write_bytes(b"existing")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.5,
                                         rename_on_conflict=True))
        assert results[0].status == batch.RELOCATED
        assert results[0].destination == out / "a__2.png"

    def test_dry_run_touches_nothing(self, dirs):
        ref, comp, out = dirs
        save(solid(), comp / "a.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.5, dry_run=True))
        assert results[0].status == batch.WOULD_RELOCATE
        assert results[0].relocated
        assert (comp / "a.png").exists()
        assert list(out.iterdir()) == []

    def test_unreadable_reference(self, dirs, tmp_path):
        _, comp, out = dirs
        bad = tmp_path / "bad.png"
        bad.write_text("nope")
        with pytest.raises(DecodeError):
            run_batch(make_options(bad, comp, out, match_threshold=0.5))

    def test_report_row(self, dirs):
        ref, comp, out = dirs
        save(half_and_half(), comp / "half.png")
        row = run_batch(make_options(ref, comp, out))[0].as_row()
        assert row == {
            "file": "half.png",
            "match_percent": 50.0,
            "status": batch.DISABLED,
            "destination": "",
            "error": "",
        }

    def test_mismatched_colours(self, dirs):
        ref, comp, out = dirs
        save(solid(color=BLUE), comp / "blue.png")
        results = run_batch(make_options(ref, comp, out, match_threshold=0.01))
        assert results[0].match_ratio == 0.0
        assert results[0].status == batch.BELOW_THRESHOLD

    def test_16bit_images_with_different_values_stay(self, tmp_path):
        comp = tmp_path / "deep"
        out = tmp_path / "deep_out"
        comp.mkdir()
        out.mkdir()
        ref = tmp_path / "ref16.png"
        Image.new("I;16", (2, 2), 1000).save(ref)
        Image.new("I;16", (2, 2), 2000).save(comp / "other.png")
        Image.new("I;16", (2, 2), 1000).save(comp / "same.png")

        res = by_name(run_batch(make_options(ref, comp, out, match_threshold=0.5)))
        assert res["other.png"].match_ratio == 0.0
        assert res["other.png"].status == batch.BELOW_THRESHOLD
        assert (comp / "other.png").exists()
        assert res["same.png"].status == batch.RELOCATED
