from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ServiceType(Enum):
    GOOSE = "GOOSE"
    SMV = "SMV"
    REPORT = "Report"


# Control block tags searched for each ExtRef serviceType. An ExtRef
# without serviceType may be bound to any kind of control block.
CONTROL_BLOCK_TAGS = {
    "GOOSE": ["GSEControl"],
    "SMV": ["SampledValueControl"],
    "Report": ["ReportControl"],
    None: ["LogControl", "GSEControl", "SampledValueControl", "ReportControl"],
}

# serviceType written on an ExtRef when subscribing to a control block
SERVICE_TYPE_BY_TAG = {
    "GSEControl": ServiceType.GOOSE.value,
    "SampledValueControl": ServiceType.SMV.value,
    "ReportControl": ServiceType.REPORT.value,
}

# ExtRef attributes that must all be present for it to count as subscribed
SUBSCRIPTION_IDENTITY_ATTRS = ("iedName", "ldInst", "lnClass", "lnInst", "doName")

FCDA_IDENTITY_ATTRS = ("ldInst", "prefix", "lnClass", "lnInst", "doName", "daName")

# Attributes written by subscribe and removed again by unsubscribe
SOURCE_ATTRS = ("iedName", "serviceType", "ldInst", "prefix", "lnClass",
                "lnInst", "doName", "daName")
SOURCE_CB_ATTRS = ("srcLDInst", "srcPrefix", "srcLNClass", "srcLNInst", "srcCBName")

QUALITY_DA_NAME = "q"


@dataclass(frozen=True)
class IntAddr:
    """
    Structured SIPROTEC 5 ExtRef internal address.

    ``RxExtIn1;/Ind/stVal`` parses to name ``RxExtIn1``, an empty logical
    node class, data object ``Ind`` and data attribute ``stVal``.
    """
    name: str
    do_path: str
    da_path: str
    ln_class: Optional[str] = None
