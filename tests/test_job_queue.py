from dataclasses import replace

from fakes import FakeStageRunner, curl_writes, exits
from whisperq.models.job import JobOptions
from whisperq.workers.job_queue import JobQueue
from whisperq.workers.pipeline import PipelineRunner


def make_queue(stage_runner, config, options):
    started = []

    def factory(job):
        runner = PipelineRunner(job, stage_runner, config)
        started.append(runner)
        return runner

    queue = JobQueue(factory, lambda: options)
    finished = []
    queue.job_finished.connect(lambda job, ok, msg: finished.append((job.source_path.name, ok)))
    return queue, started, finished


def touch(tmp_path, *names):
    paths = []
    for n in names:
        p = tmp_path / n
        p.write_bytes(b"ID3")
        paths.append(str(p))
    return paths


def test_every_job_finishes_in_order_even_when_some_fail(tmp_path, stage_runner, config, options, present_model):
    paths = touch(tmp_path, "1.mp3", "3.mp3", "5.mp3")
    paths.insert(1, str(tmp_path / "missing-2.mp3"))
    paths.insert(3, str(tmp_path / "missing-4.mp3"))
    queue, started, finished = make_queue(stage_runner, config, options)

    queue.enqueue(paths)

    assert finished == [
        ("1.mp3", True), ("missing-2.mp3", False), ("3.mp3", True),
        ("missing-4.mp3", False), ("5.mp3", True),
    ]
    assert not queue.is_processing and len(queue) == 0


def test_failing_stage_does_not_block_later_jobs(tmp_path, stage_runner, config, options, present_model):
    stage_runner.on("whisper-cli", exits(1))
    queue, _, finished = make_queue(stage_runner, config, options)
    queue.enqueue(touch(tmp_path, "a.mp3", "b.mp3"))
    assert finished == [("a.mp3", False), ("b.mp3", False)]


def test_only_one_job_is_active(tmp_path, config, options, present_model):
    stage_runner = FakeStageRunner(auto=False)
    queue, started, finished = make_queue(stage_runner, config, options)

    queue.enqueue(touch(tmp_path, "a.mp3"))
    queue.enqueue(touch(tmp_path, "b.mp3", "c.mp3"))

    assert len(started) == 1
    assert queue.active_job.source_path.name == "a.mp3"
    assert [j.source_path.name for j in queue.pending()] == ["b.mp3", "c.mp3"]

    stage_runner.last.finish(0)
    assert len(started) == 2
    assert queue.active_job.source_path.name == "b.mp3"
    assert len(stage_runner.calls) == 2


def test_empty_and_blank_paths_are_ignored(stage_runner, config, options):
    queue, started, _ = make_queue(stage_runner, config, options)
    idle = []
    queue.idle.connect(lambda: idle.append(True))
    assert queue.enqueue([]) == []
    assert queue.enqueue(["", "  "]) == []
    assert started == [] and idle == []


def test_duplicate_paths_are_independent_jobs(tmp_path, stage_runner, config, options, present_model):
    path = touch(tmp_path, "dup.mp3")[0]
    queue, started, finished = make_queue(stage_runner, config, options)
    jobs = queue.enqueue([path, path])
    assert len(jobs) == 2
    assert finished == [("dup.mp3", True), ("dup.mp3", True)]
    assert stage_runner.count("whisper-cli") == 2


def test_clear_keeps_the_active_job(tmp_path, config, options, present_model):
    stage_runner = FakeStageRunner(auto=False)
    queue, started, finished = make_queue(stage_runner, config, options)
    queue.enqueue(touch(tmp_path, "a.mp3", "b.mp3", "c.mp3"))

    queue.clear()

    assert queue.pending() == []
    assert queue.is_processing
    stage_runner.last.finish(0)
    assert finished == [("a.mp3", True)]
    assert len(started) == 1
    assert not queue.is_processing


def test_idle_after_last_job(tmp_path, stage_runner, config, options, present_model):
    queue, _, _ = make_queue(stage_runner, config, options)
    idle = []
    queue.idle.connect(lambda: idle.append(True))
    queue.enqueue(touch(tmp_path, "a.mp3", "b.mp3"))
    assert idle == [True]


def test_shared_model_is_fetched_once(tmp_path, stage_runner, config, options):
    stage_runner.on("curl", curl_writes(2_000_000))
    queue, _, finished = make_queue(stage_runner, config, options)
    queue.enqueue(touch(tmp_path, "b.mp3", "c.mp3"))
    assert stage_runner.count("curl") == 1
    assert stage_runner.count("whisper-cli") == 2
    assert [ok for _, ok in finished] == [True, True]


def test_options_are_snapshotted_at_enqueue(tmp_path, config, present_model):
    stage_runner = FakeStageRunner(auto=False)
    current = {"opts": JobOptions(model="base", language="en")}
    queue = JobQueue(lambda job: PipelineRunner(job, stage_runner, config), lambda: current["opts"])

    queue.enqueue(touch(tmp_path, "a.mp3", "b.mp3"))
    current["opts"] = replace(current["opts"], language="fr")
    queue.enqueue(touch(tmp_path, "c.mp3"))

    assert [j.options.language for j in queue.pending()] == ["en", "fr"]
    assert queue.active_job.options.language == "en"


def test_large_batch_of_missing_files_does_not_recurse(tmp_path, stage_runner, config, options):
    queue, _, finished = make_queue(stage_runner, config, options)
    queue.enqueue([str(tmp_path / f"gone-{i}.wav") for i in range(3000)])
    assert len(finished) == 3000
    assert not any(ok for _, ok in finished)
