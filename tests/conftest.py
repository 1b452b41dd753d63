import os
import sys

import pytest

repo_src = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src'))
if repo_src not in sys.path:
    sys.path.insert(0, repo_src)

from PySide6.QtCore import QSettings

from lb_siemens.core.editor import SclEditor
from lb_siemens.core.plugin import SubscriberLaterBindingSiemens, LATER_BINDING_IDENTITY
from lb_siemens.core.scl_tree import local_name
from lb_siemens.core.settings import PluginSettings


SCD_SIEMENS = '''<?xml version="1.0"?>
<SCL xmlns="http://www.iec.ch/61850/2003/SCL">
  <IED name="Pub" manufacturer="SIEMENS">
    <AccessPoint name="AP1"><Server>
      <LDevice inst="Meas">
        <LN0 lnClass="LLN0" inst="" lnType="LLN0_T">
          <DataSet name="GooseDS">
            <FCDA ldInst="Meas" lnClass="GGIO" lnInst="1" doName="Ind" daName="stVal" fc="ST"/>
            <FCDA ldInst="Meas" lnClass="GGIO" lnInst="1" doName="Ind" daName="q" fc="ST"/>
            <FCDA ldInst="Meas" lnClass="GGIO" lnInst="2" doName="Ind" daName="stVal" fc="ST"/>
          </DataSet>
          <DataSet name="SvDS">
            <FCDA ldInst="Meas" lnClass="TCTR" lnInst="1" doName="AmpSv" daName="instMag.i" fc="MX"/>
            <FCDA ldInst="Meas" lnClass="TCTR" lnInst="1" doName="AmpSv" daName="q" fc="MX"/>
            <FCDA ldInst="Meas" lnClass="TCTR" lnInst="2" doName="AmpSv" daName="instMag.i" fc="MX"/>
            <FCDA ldInst="Meas" lnClass="TCTR" lnInst="2" doName="AmpSv" daName="q" fc="MX"/>
          </DataSet>
          <GSEControl name="GCB" datSet="GooseDS" appID="PubGoose"/>
          <SampledValueControl name="MSVCB01" datSet="SvDS" smvID="PubSv" smpRate="80" nofASDU="1"/>
        </LN0>
        <LN lnClass="GGIO" inst="1" lnType="GGIO_T"/>
        <LN lnClass="GGIO" inst="2" lnType="GGIO_T"/>
        <LN lnClass="TCTR" inst="1" lnType="TCTR_T"/>
        <LN lnClass="TCTR" inst="2" lnType="TCTR_T"/>
      </LDevice>
    </Server></AccessPoint>
  </IED>
  <IED name="Sub" manufacturer="SIEMENS">
    <AccessPoint name="AP1"><Server>
      <LDevice inst="GooseRx">
        <LN0 lnClass="LLN0" inst="" lnType="LLN0_T"/>
        <LN lnClass="GGIO" inst="1" lnType="GGIO_T">
          <Inputs>
            <ExtRef intAddr="RxExtIn1;/Ind/stVal" desc="value"/>
            <ExtRef intAddr="RxExtIn1;/Ind/q" desc="quality"/>
            <ExtRef intAddr="RxExtIn2;/Ind/stVal" desc="value without quality"/>
          </Inputs>
        </LN>
        <LN lnClass="GGIO" inst="3" lnType="GGIO_T">
          <Inputs>
            <ExtRef intAddr="Broken/Ind/stVal" desc="malformed"/>
            <ExtRef intAddr="Broken/Ind/q" desc="malformed quality"/>
          </Inputs>
        </LN>
      </LDevice>
      <LDevice inst="SvRx">
        <LN0 lnClass="LLN0" inst="" lnType="LLN0_T"/>
        <LN lnClass="TCTR" inst="1" lnType="TCTR_T">
          <Inputs>
            <ExtRef intAddr="AmpSv;TCTR/AmpSv/instMag.i" desc="phase A"/>
            <ExtRef intAddr="AmpSv;TCTR/AmpSv/q" desc="phase A quality"/>
          </Inputs>
        </LN>
        <LN lnClass="TCTR" inst="2" lnType="TCTR_T">
          <Inputs>
            <ExtRef intAddr="AmpSv;TCTR/AmpSv/instMag.i" desc="phase B"/>
            <ExtRef intAddr="AmpSv;TCTR/AmpSv/q" desc="phase B quality"/>
          </Inputs>
        </LN>
      </LDevice>
    </Server></AccessPoint>
  </IED>
</SCL>
'''

LATER_BINDING = {"identity": LATER_BINDING_IDENTITY, "allowexternalplugins": ""}


def find_all(editor, tag, **attrs):
    return [
        element for element in editor.tree.root.iter()
        if local_name(element.tag) == tag
        and all(element.get(name) == value for name, value in attrs.items())
    ]


def find_one(editor, tag, **attrs):
    matches = find_all(editor, tag, **attrs)
    assert len(matches) == 1, f"{tag} {attrs}: {len(matches)} matches"
    return matches[0]


@pytest.fixture
def editor():
    return SclEditor.from_string(SCD_SIEMENS, doc_name="siemens.scd")


@pytest.fixture
def settings(tmp_path):
    qs = QSettings(str(tmp_path / "lb_siemens.ini"), QSettings.Format.IniFormat)
    plugin_settings = PluginSettings(qs)
    plugin_settings.set_enabled(True)
    return plugin_settings


@pytest.fixture
def plugin(editor, settings):
    p = SubscriberLaterBindingSiemens(settings=settings)
    editor.add_plugin(p)
    return p


@pytest.fixture
def requested(plugin):
    intents = []
    plugin.edit_requested.connect(lambda intent: intents.append(intent))
    return intents
