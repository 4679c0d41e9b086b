import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import List

from .report import RunSummary
from .serialize import Serializable

logger = logging.getLogger(__name__)

class MailSettings(Serializable):
    yaml_tag = u"!MailSettings"
    def __init__(self,smtpHost:str,sender:str,recipients:List[str],smtpPort:int=25,subjectPrefix:str="[fleetwipe]",useStartTLS:bool=False,username:str=None,password:str=None,timeout:int=30):
        self.smtpHost = smtpHost
        self.sender = sender
        self.recipients = recipients
        self.smtpPort = smtpPort
        self.subjectPrefix = subjectPrefix
        self.useStartTLS = useStartTLS
        self.username = username
        self.password = password
        self.timeout = timeout
    def __repr__(self) -> str:
        return "{}({}:{} -> {})".format(self.__class__.__name__,self.smtpHost,self.smtpPort,len(self.recipients))

def build_summary_message(summary:RunSummary,mail:MailSettings,reportPath=None) -> EmailMessage:
    msg = EmailMessage()
    status = "completed" if summary.hostFailures == 0 else "completed with host failures"
    msg["Subject"] = "{} Remote deletion {} : {}/{} removed".format(mail.subjectPrefix,status,summary.removed,summary.total)
    msg["From"] = mail.sender
    msg["To"] = ", ".join(mail.recipients)

    lines = [
        "Remote deletion run {}.".format(status),
        "",
        "Rows in worklist  : {}".format(summary.total),
        "Removed           : {}".format(summary.removed),
        "Failed            : {}".format(summary.failed),
        "No longer present : {}".format(summary.gone),
        "Hosts failed      : {}".format(summary.hostFailures),
    ]
    if reportPath is not None:
        lines += ["","The full report is attached ({}).".format(Path(reportPath).name)]
    msg.set_content("\n".join(lines)+"\n")

    if reportPath is not None:
        reportPath = Path(reportPath)
        msg.add_attachment(reportPath.read_bytes(),maintype="text",subtype="html",filename=reportPath.name)
    return msg

def send_summary(summary:RunSummary,mail:MailSettings,reportPath=None) -> None:
    """Mail the run summary. SMTP problems are raised to the caller."""
    msg = build_summary_message(summary,mail,reportPath)
    with smtplib.SMTP(mail.smtpHost,mail.smtpPort,timeout=mail.timeout) as server:
        if mail.useStartTLS:
            server.starttls()
        if mail.username:
            server.login(mail.username,mail.password or "")
        server.send_message(msg)
    logger.info("Sent summary mail to {}".format(", ".join(mail.recipients)))
