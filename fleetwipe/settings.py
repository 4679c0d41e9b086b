"""
Run settings live in a single yaml file, e.g.

    !RunSettings
    hosts:
      web01: !SSHHostConfig {hostname: web01.example.com, username: ops}
      localhost: !LocalHostConfig {}
    reportDirectory: reports
    isolateHostFailures: true
    mail: !MailSettings {smtpHost: mail.example.com, sender: wipe@example.com, recipients: [ops@example.com]}

Hosts that are not listed are reached over ssh using their name from the worklist.
The file is written back after a run so host keys learned on first connection are kept.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

from .notify import MailSettings
from .remote import HostConfig
from .serialize import Serializable

logger = logging.getLogger(__name__)

class SettingsException(Exception): pass

class RunSettings(Serializable):
    yaml_tag = u"!RunSettings"
    def __init__(self,hosts:Dict[str,HostConfig]=None,hostColumn:str="Host",pathColumn:str="Path",sheetName:str=None,reportDirectory:str="reports",isolateHostFailures:bool=False,recheckAfterFailure:bool=False,mail:Optional[MailSettings]=None):
        self.hosts = hosts or {}
        self.hostColumn = hostColumn
        self.pathColumn = pathColumn
        self.sheetName = sheetName
        self.reportDirectory = reportDirectory
        self.isolateHostFailures = isolateHostFailures
        self.recheckAfterFailure = recheckAfterFailure
        self.mail = mail
    def __repr__(self):
        return "{}(Hosts={}, isolateHostFailures={}, mail={})".format(self.__class__.__name__,len(self.hosts),self.isolateHostFailures,self.mail)

def load_settings(filename) -> RunSettings:
    filename = Path(filename)
    if not filename.exists():
        logger.info("No settings file at {}, using defaults".format(filename))
        return RunSettings()
    with open(filename,"r") as f:
        try:
            settings = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SettingsException("Unable to parse {} : {}".format(filename,e)) from e
    if settings is None:
        return RunSettings()
    if not isinstance(settings,RunSettings):
        raise SettingsException("{} does not hold a !RunSettings document".format(filename))
    for name,host in settings.hosts.items():
        if not isinstance(host,HostConfig):
            raise SettingsException("Host \"{}\" in {} is not a host config : {}".format(name,filename,host))
    return settings

def save_settings(settings:RunSettings,filename) -> None:
    with open(filename,"w") as f:
        yaml.dump(settings,f,sort_keys=False)
