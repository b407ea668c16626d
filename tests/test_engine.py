import asyncio

import pytest
from saltmaster.core.errors import ProviderError, ValidationError
from saltmaster.deferred import Deferred
from saltmaster.orchestration.engine import ExecutionEngine
from saltmaster.orchestration.registry import Step, StepGraph
from saltmaster.orchestration.results import ExecutionTrace


def returning(value, delay=0.0, calls=None, name=None):
    async def action(inputs):
        if calls is not None:
            calls.append(name)
        if delay:
            await asyncio.sleep(delay)
        return value

    return action


def raising(exc, delay=0.0):
    async def action(inputs):
        if delay:
            await asyncio.sleep(delay)
        raise exc

    return action


@pytest.mark.asyncio
async def test_results_keyed_by_step_and_inputs_passed():
    graph = StepGraph()
    graph.add(Step("a", returning(1)))
    graph.add(Step("b", returning(2)))

    async def add(inputs):
        return inputs["a"] + inputs["b"]

    graph.add(Step("sum", add, ("a", "b")))

    results = await ExecutionEngine(graph).execute()

    assert results == {"a": 1, "b": 2, "sum": 3}


@pytest.mark.asyncio
async def test_independent_steps_overlap():
    graph = StepGraph()
    graph.add(Step("slow", returning("s", delay=0.05)))
    graph.add(Step("fast", returning("f", delay=0.01)))
    trace = ExecutionTrace()

    await ExecutionEngine(graph).execute(trace)

    assert trace.steps("started") == ["slow", "fast"]
    assert trace.steps("completed") == ["fast", "slow"]


@pytest.mark.asyncio
async def test_step_waits_for_deferred_result():
    graph = StepGraph()

    async def produce(inputs):
        async def token():
            await asyncio.sleep(0.01)
            return "deadbeef"

        return Deferred(token())

    async def consume(inputs):
        return inputs["token"].value()

    graph.add(Step("token", produce))
    graph.add(Step("use", consume, ("token",)))

    results = await ExecutionEngine(graph).execute()

    assert results["use"] == "deadbeef"


@pytest.mark.asyncio
async def test_failure_skips_dependents_and_keeps_identity():
    error = ProviderError("quota exceeded")
    calls = []
    graph = StepGraph()
    graph.add(Step("reserve", raising(error), (), "address reservation"))
    graph.add(Step("attach", returning(None, calls=calls, name="attach"), ("reserve",)))
    trace = ExecutionTrace()

    with pytest.raises(ProviderError) as excinfo:
        await ExecutionEngine(graph).execute(trace)

    assert excinfo.value is error
    assert error.step == "reserve"
    assert error.details["step"] == "reserve"
    assert str(error) == "address reservation failed: quota exceeded"
    assert calls == []
    assert trace.steps("skipped") == ["attach"]


@pytest.mark.asyncio
async def test_dependents_cancelled_before_first_turn_are_recorded_skipped():
    calls = []
    graph = StepGraph()
    graph.add(Step("reserve", raising(ProviderError("quota exceeded"))))
    graph.add(Step("attach", returning(None, calls=calls, name="attach"), ("reserve",)))
    graph.add(Step("dns", returning(None, calls=calls, name="dns"), ("reserve",)))
    graph.add(Step("publish", returning(None, calls=calls, name="publish"), ("attach", "dns")))
    trace = ExecutionTrace()

    with pytest.raises(ProviderError):
        await ExecutionEngine(graph).execute(trace)

    assert calls == []
    assert sorted(trace.steps("skipped")) == ["attach", "dns", "publish"]
    assert trace.steps("started") == ["reserve"]


@pytest.mark.asyncio
async def test_failure_in_deferred_result_is_attributed_to_step():
    error = ProviderError("entropy exhausted")
    graph = StepGraph()

    async def produce(inputs):
        async def token():
            await asyncio.sleep(0)
            raise error

        return Deferred(token())

    graph.add(Step("token", produce, (), "peer token generation"))

    with pytest.raises(ProviderError) as excinfo:
        await ExecutionEngine(graph).execute()

    assert excinfo.value is error
    assert error.step == "token"


@pytest.mark.asyncio
async def test_other_exceptions_get_a_note():
    error = KeyError("id")
    graph = StepGraph()
    graph.add(Step("attach", raising(error)))

    with pytest.raises(KeyError) as excinfo:
        await ExecutionEngine(graph).execute()

    assert excinfo.value is error
    assert "while running step 'attach'" in excinfo.value.__notes__[0]


@pytest.mark.asyncio
async def test_first_failure_cancels_waiting_steps_but_not_running_ones():
    calls = []
    graph = StepGraph()
    graph.add(Step("fail", raising(ProviderError("boom"), delay=0.01)))
    graph.add(Step("running", returning("done", delay=0.05, calls=calls, name="running")))
    graph.add(Step("waiting", returning(None, calls=calls, name="waiting"), ("running",)))
    trace = ExecutionTrace()

    with pytest.raises(ProviderError):
        await ExecutionEngine(graph).execute(trace)

    assert calls == ["running"]
    assert trace.index("running", "completed") is not None
    assert trace.index("waiting", "started") is None


@pytest.mark.asyncio
async def test_only_first_failure_is_raised():
    first = ProviderError("first")
    second = ProviderError("second")
    graph = StepGraph()
    graph.add(Step("a", raising(first, delay=0.0)))
    graph.add(Step("b", raising(second, delay=0.02)))

    with pytest.raises(ProviderError) as excinfo:
        await ExecutionEngine(graph).execute()

    assert excinfo.value is first


@pytest.mark.asyncio
async def test_invalid_graph_raises_before_running():
    calls = []
    graph = StepGraph()
    graph.add(Step("a", returning(None, calls=calls, name="a"), ("missing",)))

    with pytest.raises(ValidationError):
        await ExecutionEngine(graph).execute()

    assert calls == []
