import os
import re
import time

import fitz
import pytest

from pdfdelta import orchestrator
from pdfdelta.errors import CommitError, LoadError, ModifyError, ScanError
from pdfdelta.orchestrator import DiffOrchestrator, diff_file_name

from conftest import make_pdf

PAGES = [[(10, 10, 60, 30)], [(100, 50, 150, 70)], [(20, 150, 180, 160)]]


@pytest.fixture
def dirs(tmp_path):
    current = tmp_path / "current"
    baseline = tmp_path / "baseline"
    output = tmp_path / "output"
    for directory in (current, baseline, output):
        directory.mkdir()
    return current, baseline, output


@pytest.fixture
def orch(engine, dirs):
    return DiffOrchestrator(engine, *dirs)


def _age(path, seconds):
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


def test_new_document_is_diffed_and_promoted(orch, dirs):
    current, baseline, output = dirs
    source = make_pdf(current / "doc.pdf", PAGES)

    results = orch.run()

    outcome = results[source]
    assert outcome.ok
    assert outcome.dropped_pages == ()
    assert re.fullmatch(r"doc\.pdf\.diff\.\d+\.pdf", outcome.output_path.name)
    assert outcome.output_path.parent == output
    with fitz.open(str(outcome.output_path)) as doc:
        assert doc.page_count == 3
    assert (baseline / "doc.pdf").read_bytes() == source.read_bytes()


def test_second_pass_is_a_no_op(orch, dirs):
    current, _, output = dirs
    make_pdf(current / "doc.pdf", PAGES)
    orch.run()
    written = sorted(output.iterdir())

    assert orch.run() == {}
    assert sorted(output.iterdir()) == written


def test_visually_identical_update_is_promoted_without_output(orch, dirs):
    current, baseline, output = dirs
    old = make_pdf(baseline / "doc.pdf", PAGES)
    _age(old, 100)
    source = make_pdf(current / "doc.pdf", PAGES)

    outcome = orch.run()[source]

    assert outcome.ok
    assert outcome.output_path is None
    assert list(output.iterdir()) == []
    assert (baseline / "doc.pdf").stat().st_mtime_ns == source.stat().st_mtime_ns


def test_only_the_changed_page_is_kept(orch, dirs):
    current, baseline, _ = dirs
    _age(make_pdf(baseline / "doc.pdf", PAGES), 100)
    edited = [PAGES[0], [(100, 50, 150, 70), (0, 190, 200, 200)], PAGES[2]]
    source = make_pdf(current / "doc.pdf", edited)

    outcome = orch.run()[source]

    assert outcome.ok
    assert outcome.dropped_pages == (0, 2)
    with fitz.open(str(outcome.output_path)) as doc:
        assert doc.page_count == 1


def test_nested_documents_keep_their_relative_location(orch, dirs):
    current, baseline, _ = dirs
    source = make_pdf(current / "team" / "doc.pdf", PAGES[:1])

    assert orch.run()[source].ok
    assert (baseline / "team" / "doc.pdf").is_file()


def test_one_broken_document_does_not_stop_the_others(orch, dirs):
    current, baseline, _ = dirs
    broken = current / "broken.pdf"
    broken.write_bytes(b"not a pdf")
    good = make_pdf(current / "good.pdf", PAGES)

    results = orch.run()

    assert results[good].ok
    assert results[broken].stage == "load"
    assert isinstance(results[broken].error, LoadError)
    assert not (baseline / "broken.pdf").exists()
    assert (baseline / "good.pdf").exists()


def test_annotation_failure_keeps_the_old_baseline(orch, dirs, monkeypatch):
    current, baseline, output = dirs
    old = make_pdf(baseline / "doc.pdf", PAGES[:1])
    _age(old, 100)
    before = old.read_bytes()
    source = make_pdf(current / "doc.pdf", PAGES[1:2])

    def broken(*args, **kwargs):
        raise ModifyError("cannot mark page")

    monkeypatch.setattr(orchestrator, "mark_differences", broken)

    outcome = orch.run()[source]

    assert outcome.stage == "annotate"
    assert isinstance(outcome.error, ModifyError)
    assert old.read_bytes() == before
    assert list(output.iterdir()) == []


def test_directory_in_place_of_baseline_is_a_commit_error(orch, dirs):
    current, baseline, _ = dirs
    (baseline / "doc.pdf").mkdir()
    source = make_pdf(current / "doc.pdf", PAGES)

    outcome = orch.run()[source]

    assert outcome.stage == "commit"
    assert isinstance(outcome.error, CommitError)
    assert outcome.output_path is not None
    assert (baseline / "doc.pdf").is_dir()


def test_scan_failure_propagates(engine, tmp_path):
    orch = DiffOrchestrator(engine, tmp_path / "missing", tmp_path / "b", tmp_path / "o")

    with pytest.raises(ScanError):
        orch.run()


def test_output_name_is_bumped_past_existing_files(orch, dirs):
    _, _, output = dirs
    (output / diff_file_name("doc.pdf", 1000)).write_bytes(b"")
    (output / diff_file_name("doc.pdf", 1001)).write_bytes(b"")

    path = orch.output_path_for(dirs[0] / "doc.pdf", now=1000)

    assert path == output / "doc.pdf.diff.1002.pdf"


def test_revision_saved_during_a_pass_is_picked_up_next_time(orch, dirs, monkeypatch):
    current, baseline, _ = dirs
    source = make_pdf(current / "doc.pdf", PAGES)
    compare = orchestrator.compare_pdfs
    saved = []

    def compare_then_save(*args, **kwargs):
        result = compare(*args, **kwargs)
        if not saved:
            make_pdf(source, [PAGES[0], [(0, 0, 200, 20)], PAGES[2]])
            _age(source, -5)
            saved.append(source.read_bytes())
        return result

    monkeypatch.setattr(orchestrator, "compare_pdfs", compare_then_save)

    assert orch.run()[source].ok
    assert (baseline / "doc.pdf").read_bytes() != saved[0]
    assert (baseline / "doc.pdf").stat().st_mtime_ns < source.stat().st_mtime_ns

    second = orch.run()

    assert second[source].ok
    assert second[source].dropped_pages == (0, 2)
    assert (baseline / "doc.pdf").read_bytes() == saved[0]
