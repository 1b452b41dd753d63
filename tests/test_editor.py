import xml.etree.ElementTree as ET

import pytest

from lb_siemens.core.edit_bus import EditEventBus
from lb_siemens.core.editor import SclEditError, SclEditor
from lb_siemens.core.subscription import is_subscribed
from lb_siemens.models.edit_models import (
    EditBatch,
    EditEvent,
    Insert,
    Remove,
    SubscribeIntent,
    UnsubscribeIntent,
    Update,
    flatten_edits,
)

from conftest import SCD_SIEMENS, find_all, find_one


def _sources(editor):
    value = find_one(editor, "ExtRef", intAddr="RxExtIn1;/Ind/stVal")
    fcda = find_one(editor, "FCDA", lnClass="GGIO", lnInst="1", daName="stVal")
    cb = find_one(editor, "GSEControl", name="GCB")
    return value, fcda, cb


def test_from_file(tmp_path):
    p = tmp_path / "siemens.scd"
    p.write_text(SCD_SIEMENS)
    editor = SclEditor.from_file(str(p))
    assert editor.doc_name == "siemens.scd"
    assert len(find_all(editor, "ExtRef")) == 9


def test_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        SclEditor.from_file(str(tmp_path / "missing.scd"))


def test_apply_update_sets_and_removes(editor):
    value, _, _ = _sources(editor)
    editor.apply(Update(element=value, attributes={"iedName": "Pub", "desc": None}))
    assert value.get("iedName") == "Pub"
    assert value.get("desc") is None


def test_apply_insert_and_remove(editor):
    inputs = editor.tree.parent(find_one(editor, "ExtRef", intAddr="RxExtIn2;/Ind/stVal"))
    first = list(inputs)[0]
    node = ET.Element("ExtRef", intAddr="New;/Ind/stVal")

    editor.apply(Insert(parent=inputs, node=node, reference=first))
    assert list(inputs)[0] is node
    assert editor.tree.parent(node) is inputs

    editor.apply(Remove(node=node))
    assert node not in list(inputs)
    assert not editor.tree.contains(node)


def test_apply_rejects_detached_elements(editor):
    with pytest.raises(SclEditError):
        editor.apply(Update(element=ET.Element("ExtRef"), attributes={"desc": "x"}))
    with pytest.raises(SclEditError):
        editor.apply(Remove(node=ET.Element("ExtRef")))


def test_insert_rejects_foreign_reference(editor):
    inputs = editor.tree.parent(find_one(editor, "ExtRef", intAddr="RxExtIn2;/Ind/stVal"))
    foreign = find_one(editor, "ExtRef", intAddr="Broken/Ind/stVal")
    node = ET.Element("ExtRef", intAddr="New;/Ind/stVal")

    with pytest.raises(SclEditError):
        editor.apply(Insert(parent=inputs, node=node, reference=foreign))
    with pytest.raises(SclEditError):
        editor.apply(Insert(parent=inputs, node=node, reference=ET.Element("ExtRef")))

    assert not editor.tree.contains(node)
    assert len(list(inputs)) == 3


def test_rejected_batch_is_not_applied(editor):
    value, _, _ = _sources(editor)
    phases = []
    editor.bus.on(lambda event: phases.append("capture"), capture=True)
    editor.bus.on(lambda event: phases.append("normal"))
    editor.bus.on_settled(lambda event: phases.append("settled"))

    batch = EditBatch(edits=[
        Update(element=value, attributes={"desc": "changed"}),
        Remove(node=ET.Element("ExtRef")),
    ])
    with pytest.raises(SclEditError):
        editor.edit(batch)

    assert value.get("desc") == "value"
    assert phases == ["settled"]


def test_settled_listeners_run_after_apply_failure(editor, monkeypatch):
    value, _, _ = _sources(editor)
    phases = []
    editor.bus.on(lambda event: phases.append("capture"), capture=True)
    editor.bus.on(lambda event: phases.append("normal"))
    editor.bus.on_settled(lambda event: phases.append("settled"))

    def _fail(self, edit):
        raise SclEditError("apply failure")

    monkeypatch.setattr(SclEditor, "apply", _fail)
    with pytest.raises(SclEditError):
        editor.edit(Update(element=value, attributes={"desc": "changed"}))

    assert phases == ["capture", "settled"]


def test_subscribe_builds_update(editor):
    value, fcda, cb = _sources(editor)
    update = editor.subscribe(value, fcda, cb)

    assert update.element is value
    assert update.attributes["iedName"] == "Pub"
    assert update.attributes["serviceType"] == "GOOSE"
    assert update.attributes["ldInst"] == "Meas"
    assert update.attributes["prefix"] is None
    assert update.attributes["daName"] == "stVal"
    assert update.attributes["srcLDInst"] == "Meas"
    assert update.attributes["srcLNClass"] == "LLN0"
    assert update.attributes["srcLNInst"] is None
    assert update.attributes["srcCBName"] == "GCB"

    editor.apply(update)
    assert is_subscribed(value)


def test_subscribe_respects_preferred_attributes(editor):
    value, fcda, cb = _sources(editor)
    value.set("pServT", "SMV")
    assert editor.subscribe(value, fcda, cb) is None
    assert editor.subscribe(value, fcda, cb, force=True) is not None

    value.set("pServT", "GOOSE")
    value.set("pDA", "q")
    assert editor.subscribe(value, fcda, cb) is None
    assert editor.subscribe(value, fcda, cb, check_only_preferred_basic_type=True) is not None


def test_unsubscribe_removes_source(editor):
    value, fcda, cb = _sources(editor)
    editor.apply(editor.subscribe(value, fcda, cb))

    (update,) = editor.unsubscribe([value])
    editor.apply(update)

    assert not is_subscribed(value)
    assert value.get("srcCBName") is None
    assert value.get("serviceType") is None
    assert value.get("intAddr") == "RxExtIn1;/Ind/stVal"


def test_request_applies_intents(editor):
    value, fcda, cb = _sources(editor)
    seen = []
    editor.bus.on(seen.append)

    editor.request(SubscribeIntent(sink=value, fcda=fcda, control_block=cb))
    assert is_subscribed(value)
    assert seen[-1].initiator == {"identity": "oscd-subscriber-lb-siemens"}

    editor.request(UnsubscribeIntent(sinks=(value,)))
    assert not is_subscribed(value)


def test_request_rejected_subscription_dispatches_nothing(editor):
    value, fcda, cb = _sources(editor)
    value.set("pLN", "MMXU")
    seen = []
    editor.bus.on(seen.append)

    editor.request(SubscribeIntent(sink=value, fcda=fcda, control_block=cb))

    assert seen == []
    assert not is_subscribed(value)


def test_dispatch_order(editor):
    value, _, _ = _sources(editor)
    order = []
    editor.bus.on(lambda event: order.append(("normal", value.get("desc"))))
    editor.bus.on_settled(lambda event: order.append(("settled", value.get("desc"))))
    editor.bus.on(lambda event: order.append(("capture", value.get("desc"))), capture=True)

    editor.edit(Update(element=value, attributes={"desc": "after"}))

    assert order == [("capture", "value"), ("normal", "after"), ("settled", "after")]


def test_bus_isolates_failing_listener():
    bus = EditEventBus()
    calls = []

    def _fail(event):
        raise ValueError("listener failure")

    bus.on(_fail)
    bus.on(calls.append)
    event = EditEvent(detail=EditBatch())
    bus.emit(event)

    assert calls == [event]

    bus.off(calls.append)
    bus.off(calls.append)
    bus.emit(event)
    assert calls == [event]


def test_flatten_nested_batches():
    a, b, c = (Update(element=ET.Element("ExtRef")) for _ in range(3))
    detail = EditBatch(edits=[a, EditBatch(edits=[EditBatch(edits=[b]), EditBatch()]), c])

    assert flatten_edits(detail) == [a, b, c]
    assert flatten_edits(a) == [a]
    assert flatten_edits(EditBatch()) == []
