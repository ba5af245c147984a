from pipeyard.services.compensation import CompensationStack


async def test_unwind_runs_newest_first():
    calls = []
    stack = CompensationStack()
    for name in ("shipment", "truck", "appointment"):
        async def undo(name=name):
            calls.append(name)

        stack.push(name, undo)

    failed = await stack.unwind()

    assert calls == ["appointment", "truck", "shipment"]
    assert failed == []
    assert len(stack) == 0


async def test_failed_undo_does_not_stop_the_rest():
    calls = []
    stack = CompensationStack()

    async def undo_shipment():
        calls.append("shipment")

    async def undo_truck():
        raise RuntimeError("connection lost")

    stack.push("shipment", undo_shipment)
    stack.push("truck", undo_truck)

    failed = await stack.unwind()

    assert failed == ["truck"]
    assert calls == ["shipment"]


async def test_clear_forgets_steps():
    calls = []
    stack = CompensationStack()

    async def undo():
        calls.append("shipment")

    stack.push("shipment", undo)
    assert stack.descriptions == ["shipment"]

    stack.clear()
    await stack.unwind()

    assert calls == []
