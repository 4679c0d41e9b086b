import html
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

import openpyxl
from openpyxl.utils import get_column_letter

from .models import ItemResult, RemovalAction, RunErrors

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ["Host","Path","Timestamp","Existed Before","Exists After","Action","Error"]

@dataclass
class RunSummary:
    total: int = 0        # rows in the worklist
    removed: int = 0      # removed and confirmed gone
    failed: int = 0       # results carrying an error, missing paths included
    gone: int = 0         # no longer on the host, whatever the reason
    hostFailures: int = 0

    def toDict(self) -> dict:
        return asdict(self)
    def __str__(self) -> str:
        return "{} rows : {} removed, {} failed, {} no longer present, {} hosts failed".format(
            self.total,self.removed,self.failed,self.gone,self.hostFailures)

def summarize(results:Sequence[ItemResult],totalRows:int,errors:Optional[RunErrors]=None) -> RunSummary:
    summary = RunSummary(total=totalRows)
    for r in results:
        if r.action == RemovalAction.REMOVED and not r.existsAfter:
            summary.removed += 1
        if r.error is not None:
            summary.failed += 1
        if not r.existsAfter:
            summary.gone += 1
    if errors is not None:
        summary.hostFailures = len(errors.hostFailures)
    return summary

def _result_row(r:ItemResult) -> list:
    return [
        r.host,
        r.path,
        r.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        "Yes" if r.existedBefore else "No",
        "Yes" if r.existsAfter else "No",
        r.action.value,
        r.error or "",
    ]

#=============================================================================
#  HTML
#=============================================================================
_STYLE = """
body { font-family: sans-serif; font-size: 13px; }
table { border-collapse: collapse; margin-bottom: 1.5em; }
th, td { border: 1px solid #999; padding: 3px 8px; text-align: left; }
th { background: #ddd; }
tr.failed td { background: #fbe3e3; }
tr.lingering td { background: #fff4cc; }
"""

def _table(header:Sequence[str],rows:List[list],rowClasses:Optional[List[str]]=None) -> str:
    out = ["<table>","<tr>"+"".join("<th>{}</th>".format(html.escape(h)) for h in header)+"</tr>"]
    for idx,row in enumerate(rows):
        cls = rowClasses[idx] if rowClasses else ""
        attr = ' class="{}"'.format(cls) if cls else ""
        out.append("<tr{}>".format(attr)+"".join("<td>{}</td>".format(html.escape(str(c))) for c in row)+"</tr>")
    out.append("</table>")
    return "\n".join(out)

def render_html_report(results:Sequence[ItemResult],summary:RunSummary,errors:Optional[RunErrors]=None,title:str="Fleet Wipe Report") -> str:
    summaryRows = [
        ["Rows in worklist",summary.total],
        ["Removed",summary.removed],
        ["Failed",summary.failed],
        ["No longer present",summary.gone],
        ["Hosts failed",summary.hostFailures],
    ]
    rowClasses = []
    for r in results:
        if r.error is not None:
            rowClasses.append("failed")
        elif r.existsAfter:
            rowClasses.append("lingering")
        else:
            rowClasses.append("")

    body = [
        "<h1>{}</h1>".format(html.escape(title)),
        "<h2>Summary</h2>",
        _table(["",""],summaryRows),
    ]
    if errors is not None and len(errors.hostFailures) > 0:
        body.append("<h2>Host failures</h2>")
        body.append(_table(["Host","Reason"],[list(f) for f in errors.hostFailures]))
    body.append("<h2>Results</h2>")
    body.append(_table(RESULT_COLUMNS,[_result_row(r) for r in results],rowClasses))

    return "\n".join([
        "<!DOCTYPE html>",
        "<html><head><meta charset=\"utf-8\"><title>{}</title><style>{}</style></head><body>".format(html.escape(title),_STYLE),
        *body,
        "</body></html>",
    ])

def write_html_report(results:Sequence[ItemResult],summary:RunSummary,directory,errors:Optional[RunErrors]=None,now:Optional[datetime]=None) -> Path:
    now = now or datetime.now()
    directory = Path(directory)
    directory.mkdir(parents=True,exist_ok=True)
    filename = directory / "fleetwipe_report_{}.html".format(now.strftime("%Y%m%d_%H%M%S"))
    filename.write_text(render_html_report(results,summary,errors),encoding="utf-8")
    logger.info("Wrote report {}".format(filename))
    return filename

#=============================================================================
#  Spreadsheet export
#=============================================================================
def write_results_workbook(results:Sequence[ItemResult],filename) -> Path:
    filename = Path(filename)
    filename.parent.mkdir(parents=True,exist_ok=True)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Results"
    ws.append(RESULT_COLUMNS)
    for r in results:
        ws.append(_result_row(r))

    for col_idx,title in enumerate(RESULT_COLUMNS,start=1):
        width = max([len(title)]+[len(str(ws.cell(row=row,column=col_idx).value or "")) for row in range(2,ws.max_row+1)])
        ws.column_dimensions[get_column_letter(col_idx)].width = min(width+2,80)
    wb.save(filename)
    logger.info("Wrote results workbook {}".format(filename))
    return filename
