import logging
from pathlib import Path

import numpy as np
import pytest

from gprpipe.core import TruncatedData
from gprpipe.contracts import FailurePolicy
from gprpipe.io import read_netcdf
from gprpipe.pipeline import BatchOrchestrator, GPRProcessor
from gprpipe.pipeline import processor as processor_module
from gprpipe.filters import FilterPipeline
from gprpipe.geo import GeoLocator

from tests.helpers.synthetic import write_mala

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


def test_orchestrator_policy_from_config(make_config):
    orch = BatchOrchestrator(make_config(cli={"on_error": "abort"}))
    assert orch.policy is FailurePolicy.ABORT
    assert BatchOrchestrator(make_config()).policy is FailurePolicy.CONTINUE


def test_build_pipeline_from_profile(make_config):
    orch = BatchOrchestrator(make_config(cli={"profile": "default", "velocity": 0.1}))
    pipeline = orch.build_pipeline()

    assert len(pipeline) == 6
    assert pipeline.context.medium_velocity == 0.1


def test_build_pipeline_from_steps(make_config):
    orch = BatchOrchestrator(make_config(cli={"steps": "dewow(3),siglog"}))
    assert orch.build_pipeline().step_strings() == ["dewow(3)", "siglog(-5)"]


def test_build_pipeline_empty_by_default(internal_config):
    assert len(BatchOrchestrator(internal_config).build_pipeline()) == 0


def test_setup_logging_with_file(make_config, temp_dir):
    log_file = temp_dir / "logs" / "run.log"
    orch = BatchOrchestrator(make_config(logging={"level": "debug", "file": str(log_file)}))
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        orch._setup_logging()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
        assert log_file.exists()
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)


def test_process_files_keeps_input_order(make_config, temp_dir):
    paths = [write_mala(temp_dir, stem=f"l{i}", n_traces=10 + i, seed=i) for i in range(5)]
    orch = BatchOrchestrator(make_config(cli={"max_workers": 3}))
    processor = GPRProcessor(orch.config, GeoLocator(), FilterPipeline())

    results = orch.process_files(paths, processor)

    assert [r.index for r in results] == list(range(5))
    assert [r.radargram.n_traces for r in results] == [10, 11, 12, 13, 14]


def test_process_files_empty(internal_config):
    orch = BatchOrchestrator(internal_config)
    assert orch.process_files([], None) == []


@pytest.mark.integration
def test_batch_merges_close_acquisitions(make_config, survey_files, temp_dir):
    config = make_config(cli={"profile": "default", "merge": "10 min", "max_workers": 2,
                              "track": True})
    report = BatchOrchestrator(config).run(survey_files)

    assert not report.failed
    assert len(report.merges) == 1
    merged = report.merges[0].radargram
    assert merged.n_traces == 1000
    assert np.all(merged.timestamps[1:] >= merged.timestamps[:-1])
    assert merged.filter_names == (
        "remove_empty_traces",
        "zero_corr_max_peak",
        "correct_antenna_separation",
        "dewow",
        "normalize_horizontal_magnitudes",
        "auto_gain",
    )

    out = temp_dir / "line01_merged.nc"
    assert report.outputs[0].netcdf == out
    assert out.exists()
    assert (temp_dir / "line01_merged_track.csv").exists()
    ds = read_netcdf(out)
    assert ds.sizes["trace"] == 1000
    assert ds.attrs["processing"].startswith("remove_empty_traces,zero_corr_max_peak")


def test_batch_without_merge_exports_each_file(make_config, survey_files, temp_dir):
    out_dir = temp_dir / "out"
    report = BatchOrchestrator(make_config(cli={"output": str(out_dir)})).run(survey_files)

    assert report.merges == []
    assert sorted(p.name for p in out_dir.glob("*.nc")) == ["line01.nc", "line02.nc"]


def test_small_threshold_keeps_files_apart(make_config, survey_files, temp_dir):
    report = BatchOrchestrator(make_config(cli={"merge": "5 min"})).run(survey_files)

    assert [o.members for o in report.merges] == [[0], [1]]
    assert (temp_dir / "line01.nc").exists()
    assert (temp_dir / "line02.nc").exists()


def test_continue_policy_exports_the_rest(make_config, survey_files, broken_file, temp_dir):
    report = BatchOrchestrator(make_config()).run([survey_files[0], broken_file])

    assert report.failed
    assert not report.aborted
    assert isinstance(report.files[1].error, TruncatedData)
    assert [t.netcdf.name for t in report.outputs] == ["line01.nc"]


def test_abort_policy_exports_nothing(make_config, survey_files, broken_file, temp_dir):
    config = make_config(cli={"on_error": "abort", "max_workers": 1})
    report = BatchOrchestrator(config).run([broken_file] + survey_files)

    assert report.aborted
    assert report.failed
    assert report.outputs == []
    assert report.files[1].skipped and report.files[2].skipped
    assert list(temp_dir.glob("*.nc")) == []


def test_export_error_is_reported(make_config, survey_files, temp_dir):
    blocker = temp_dir / "blocker"
    blocker.write_text("not a directory")
    config = make_config(cli={"output": str(blocker / "line.nc")})

    report = BatchOrchestrator(config).run(survey_files[:1])

    assert report.failed
    assert report.outputs == []
    assert len(report.export_errors) == 1
    assert isinstance(report.export_errors[0][1], OSError)


def test_runs_are_deterministic(make_config, survey_files, temp_dir):
    arrays = []
    for run in ("a", "b"):
        config = make_config(cli={"profile": "default", "merge": "10 min",
                                  "output": str(temp_dir / run), "max_workers": 2})
        BatchOrchestrator(config).run(survey_files)
        arrays.append(read_netcdf(temp_dir / run / "line01_merged.nc")["amplitude"].values)

    np.testing.assert_array_equal(arrays[0], arrays[1])


def test_unexpected_error_does_not_stall_the_batch(make_config, survey_files, monkeypatch):
    real_load = processor_module.load

    def flaky_load(path, **kwargs):
        if Path(path).stem == "line02":
            raise RuntimeError("decoder crashed")
        return real_load(path, **kwargs)

    monkeypatch.setattr(processor_module, "load", flaky_load)
    report = BatchOrchestrator(make_config(cli={"max_workers": 2})).run(survey_files)

    assert report.failed
    assert not report.aborted
    assert isinstance(report.files[1].error, RuntimeError)
    assert report.files[0].ok
    assert [t.netcdf.name for t in report.outputs] == ["line01.nc"]
