from __future__ import annotations

import pytest

from chore import (
    InvalidRegistration,
    MissingArguments,
    Orchestrator,
    Param,
    TaskNotFound,
    task,
)


def test_execute_runs_dependencies_before_target(runner, calls):
    runner.task("clean", lambda: calls.append("clean"))
    runner.task("compile", ["clean"], lambda: calls.append("compile"))
    runner.task("build", ["compile"], lambda: calls.append("build"))

    runner.execute("build")

    assert calls == ["clean", "compile", "build"]


def test_execute_runs_every_resolved_task_not_only_the_first(runner, calls):
    # Returning after the first resolved task would run only "clean".
    def clean():
        calls.append("clean")
        return "cleaned"

    def build():
        calls.append("build")
        return "built"

    runner.task("clean", clean)
    runner.task("build", ["clean"], build)

    assert runner.execute("build") == "built"
    assert calls == ["clean", "build"]


def test_execute_unknown_task_invokes_nothing(runner, calls):
    runner.task("a", lambda: calls.append("a"))
    with pytest.raises(TaskNotFound):
        runner.execute("nope")
    assert calls == []


def test_execute_binds_arguments_by_name(runner):
    def greet(greeting, name):
        return f"{greeting}, {name}"

    runner.task("greet", greet)

    assert runner.execute("greet", {"name": "Ada", "greeting": "Hi"}) == "Hi, Ada"


def test_execute_uses_default_for_omitted_parameter(runner):
    def build(mode="debug"):
        return mode

    runner.task("build", build)

    assert runner.execute("build") == "debug"
    assert runner.execute("build", {"mode": "release"}) == "release"


def test_supplied_none_overrides_default(runner):
    def build(mode="debug"):
        return mode

    runner.task("build", build)

    assert runner.execute("build", {"mode": None}) is None


def test_missing_argument_raises_before_any_side_effect(runner, calls):
    def prepare():
        calls.append("prepare")

    def deploy(target, dry_run=False):
        calls.append("deploy")

    runner.task("prepare", prepare)
    runner.task("deploy", ["prepare"], deploy)

    with pytest.raises(MissingArguments) as exc:
        runner.execute("deploy", {"dry_run": True})

    assert calls == []
    assert exc.value.task_name == "deploy"
    assert exc.value.missing == ["target"]
    assert exc.value.synopsis == "deploy(target, dry_run=False)"
    assert "target" in str(exc.value)


def test_keyword_only_and_var_keyword_parameters(runner):
    def report(*, fmt="txt", **extra):
        return fmt, extra

    runner.task("report", report)

    assert runner.execute("report", {"fmt": "md", "verbose": True}) == ("md", {"verbose": True})


def test_alias_registration_runs_noop_after_dependency(runner, calls):
    runner.task("b", lambda: calls.append("b"))
    runner.task("a", ["b"])

    assert runner.execute("a") is None
    assert calls == ["b"]


def test_stacked_registrations_both_run(runner, calls):
    runner.task("lint", lambda: calls.append("lint-1"))
    runner.task("lint", lambda: calls.append("lint-2"))

    runner.execute("lint")

    assert calls == ["lint-1", "lint-2"]


@pytest.mark.parametrize(
    "args",
    [
        ("name",),
        ("name", "not-a-list"),
        ("name", ["dep"], "not-callable"),
        ("name", lambda: None, lambda: None),
        (42, lambda: None),
        ("", lambda: None),
    ],
)
def test_task_rejects_unsupported_shapes(runner, args):
    with pytest.raises(InvalidRegistration) as exc:
        runner.task(*args)
    message = str(exc.value)
    assert "task(str name, callable body)" in message
    assert "task(str name, list task_names)" in message
    assert "task(str name, list dependencies, callable body)" in message


def test_named_registration_functions(runner, calls):
    runner.register_simple("one", lambda: calls.append("one"))
    runner.register_alias("both", ["one", "two"])
    runner.register("two", ["one"], lambda: calls.append("two"))

    runner.execute("both")

    assert calls == ["one", "two"]


def test_explicit_parameter_declaration(runner):
    runner.register(
        "pack",
        [],
        lambda **kw: kw,
        params=["src", ("level", 9), Param("fmt", "zip")],
    )

    assert runner.execute("pack", {"src": "dist"}) == {"src": "dist", "level": 9, "fmt": "zip"}
    with pytest.raises(MissingArguments):
        runner.execute("pack")


def test_define_decorator_registers_function(runner, calls):
    @runner.define(depends_on=["setup"])
    def test_suite(pattern="*"):
        calls.append(f"tests:{pattern}")

    runner.task("setup", lambda: calls.append("setup"))

    assert test_suite.__name__ == "test_suite"
    runner.execute("test_suite")
    assert calls == ["setup", "tests:*"]


def test_module_level_task_decorator_tags_function():
    @task("bundle", depends_on=["build"])
    def bundle(out="dist"):
        return out

    spec = bundle._chore_task
    assert spec.name == "bundle"
    assert spec.dependencies == ("build",)
    assert spec.synopsis == "bundle(out='dist')"

    runner = Orchestrator()
    runner.add(spec)
    runner.task("build", lambda: None)
    assert runner.execute("bundle") == "dist"


def test_body_exception_propagates(runner, calls):
    def boom():
        raise RuntimeError("broken")

    runner.task("boom", boom)
    runner.task("after", ["boom"], lambda: calls.append("after"))

    with pytest.raises(RuntimeError, match="broken"):
        runner.execute("after")
    assert calls == []


def test_task_graph_accessors(runner):
    runner.task("a", lambda: None)
    assert runner.tasks is runner.get_task_graph()
    assert runner.tasks.names() == ["a"]


def test_register_accepts_generator_dependencies(runner, calls):
    runner.task("b", lambda: calls.append("b"))
    registered = runner.register("a", (d for d in ["b"]), lambda: calls.append("a"))

    assert registered.dependencies == ("b",)
    runner.execute("a")
    assert calls == ["b", "a"]


def test_define_accepts_generator_dependencies(runner, calls):
    runner.task("setup", lambda: calls.append("setup"))

    @runner.define("check", depends_on=iter(["setup"]))
    def check():
        calls.append("check")

    runner.execute("check")
    assert calls == ["setup", "check"]


def test_register_rejects_non_string_dependency(runner):
    with pytest.raises(InvalidRegistration):
        runner.register("a", iter([1]), lambda: None)
