import logging
from enum import Enum
from dataclasses import dataclass
import xml.etree.ElementTree as ET
from typing import List, Optional

from lb_siemens.core.matching import find_quality_extref, find_quality_fcda
from lb_siemens.core.scl_tree import SclTree
from lb_siemens.core.subscription import find_control_block, find_fcdas, is_subscribed
from lb_siemens.core.sv_stream import (
    MIN_STREAM_COUNT,
    count_sv_stream,
    match_fcdas_to_extrefs,
    stream_extrefs,
    stream_fcdas,
)
from lb_siemens.models.edit_models import EditIntent, SubscribeIntent, UnsubscribeIntent

logger = logging.getLogger(__name__)


class Transition(Enum):
    UNCHANGED_UNSUBSCRIBED = "unsubscribed->unsubscribed"
    SUBSCRIBED = "unsubscribed->subscribed"
    UNCHANGED_SUBSCRIBED = "subscribed->subscribed"
    UNSUBSCRIBED = "subscribed->unsubscribed"


def classify_transition(ext_ref: ET.Element, pre_event_ext_ref: Optional[ET.Element]) -> Transition:
    """A missing snapshot counts as unsubscribed."""
    was_subscribed = is_subscribed(pre_event_ext_ref)
    now_subscribed = is_subscribed(ext_ref)
    if was_subscribed and now_subscribed:
        return Transition.UNCHANGED_SUBSCRIBED
    if was_subscribed:
        return Transition.UNSUBSCRIBED
    if now_subscribed:
        return Transition.SUBSCRIBED
    return Transition.UNCHANGED_UNSUBSCRIBED


def _sinks(intent: EditIntent) -> tuple:
    if isinstance(intent, SubscribeIntent):
        return (intent.sink,)
    return intent.sinks


@dataclass(frozen=True)
class EditFlags:
    """Options captured from the element that initiated the edit."""
    ignore_supervision: bool = False
    check_only_preferred_basic_type: bool = False


class EditIntentResolver:
    """
    Decides which further subscribe/unsubscribe edits follow from one ExtRef
    changing its subscription.

    Both the sampled value stream and the value/quality pair are checked
    for every ExtRef; either, both or neither may produce intents.
    """

    def __init__(self, tree: SclTree):
        self.tree = tree

    def resolve(self, ext_ref: ET.Element, pre_event_ext_ref: Optional[ET.Element],
                flags: EditFlags = EditFlags()) -> List[EditIntent]:
        transition = classify_transition(ext_ref, pre_event_ext_ref)
        if transition in (Transition.UNCHANGED_UNSUBSCRIBED, Transition.UNCHANGED_SUBSCRIBED):
            logger.debug(f"ExtRef {ext_ref.get('intAddr')}: {transition.value}, nothing to propagate")
            return []

        # the unsubscribed side has lost its source attributes
        bound = ext_ref if transition == Transition.SUBSCRIBED else pre_event_ext_ref
        fcdas = find_fcdas(self.tree, bound)
        if not fcdas:
            logger.debug(f"ExtRef {ext_ref.get('intAddr')}: no FCDA found for source")
            return []
        first_fcda = fcdas[0]

        # control block lookup needs the source attributes too
        control_block = find_control_block(self.tree, bound)

        intents = self._sampled_value_intents(ext_ref, first_fcda, control_block, transition, flags)
        # the stream path may already have reached the quality companion
        targeted = {sink for intent in intents for sink in _sinks(intent)}
        for intent in self._quality_pair_intents(ext_ref, first_fcda, control_block, transition, flags):
            if not targeted.intersection(_sinks(intent)):
                intents.append(intent)
        return intents

    def _sampled_value_intents(self, ext_ref, first_fcda, control_block, transition, flags) -> List[EditIntent]:
        count = count_sv_stream(self.tree, first_fcda)
        if count < MIN_STREAM_COUNT:
            return []

        fcdas = stream_fcdas(self.tree, first_fcda, count)
        ext_refs = stream_extrefs(self.tree, ext_ref, count)

        intents: List[EditIntent] = []
        for fcda, sink in match_fcdas_to_extrefs(self.tree, fcdas, ext_refs):
            intent = self._intent_for(sink, fcda, control_block, transition, flags)
            if intent is not None:
                intents.append(intent)

        logger.info(f"SV stream of {count} FCDAs at {ext_ref.get('intAddr')}: {len(intents)} companion edits")
        return intents

    def _quality_pair_intents(self, ext_ref, first_fcda, control_block, transition, flags) -> List[EditIntent]:
        quality_fcda = find_quality_fcda(self.tree, first_fcda)
        quality_ext_ref = find_quality_extref(self.tree, ext_ref)
        if quality_fcda is None or quality_ext_ref is None:
            return []

        intent = self._intent_for(quality_ext_ref, quality_fcda, control_block, transition, flags,
                                  check_only_preferred_basic_type=flags.check_only_preferred_basic_type)
        if intent is None:
            return []
        logger.info(f"Quality companion {quality_ext_ref.get('intAddr')} for {ext_ref.get('intAddr')}")
        return [intent]

    def _intent_for(self, sink, fcda, control_block, transition, flags,
                    check_only_preferred_basic_type: bool = False) -> Optional[EditIntent]:
        if transition == Transition.UNSUBSCRIBED:
            return UnsubscribeIntent(sinks=(sink,), ignore_supervision=flags.ignore_supervision)

        if control_block is None:
            logger.debug(f"No control block, skipping subscription of {sink.get('intAddr')}")
            return None
        return SubscribeIntent(
            sink=sink,
            fcda=fcda,
            control_block=control_block,
            ignore_supervision=flags.ignore_supervision,
            check_only_preferred_basic_type=check_only_preferred_basic_type,
        )
