"""
Reading the worklist: a spreadsheet (or csv) with at least a host column and a path column.

The first row is the header. Every following row that has both a host and a path becomes a WorkItem,
rows missing either are dropped without complaint. totalRows still counts them so the report can
say how many rows the operator handed us. Host names are trimmed, paths are taken exactly as written.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import openpyxl

from .models import WorkItem

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = [".xlsx",".xlsm"]

class WorklistException(Exception): pass

@dataclass
class Worklist:
    items: List[WorkItem] = field(default_factory=list)
    totalRows: int = 0

def _cell_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()

def _column_index(header:Sequence[str],name:str,filename) -> int:
    wanted = name.strip().lower()
    for idx,title in enumerate(header):
        if title.lower() == wanted:
            return idx
    raise WorklistException("Column \"{}\" not found in {} (columns : {})".format(name,filename,", ".join(header)))

def parse_rows(rows:Iterable[Sequence],hostColumn:str="Host",pathColumn:str="Path",source="worklist") -> Worklist:
    """rows is the header row followed by the data rows, as any iterable of cell sequences"""
    rows = iter(rows)
    try:
        header = [_cell_text(c) for c in next(rows)]
    except StopIteration:
        raise WorklistException("{} is empty".format(source))
    hostIdx = _column_index(header,hostColumn,source)
    pathIdx = _column_index(header,pathColumn,source)

    worklist = Worklist()
    for rowNum,row in enumerate(rows,start=2):
        cells = [_cell_text(c) for c in row]
        if not any(cells):
            continue
        worklist.totalRows += 1
        host = cells[hostIdx] if hostIdx < len(cells) else ""
        # the path is kept exactly as written, only a blank one is dropped
        path = row[pathIdx] if pathIdx < len(row) and row[pathIdx] is not None else ""
        path = str(path)
        if len(host) == 0 or len(path.strip()) == 0:
            logger.debug("Skipping row {} of {} : missing host or path".format(rowNum,source))
            continue
        worklist.items.append(WorkItem(host,path))
    return worklist

def read_worklist(filename,hostColumn:str="Host",pathColumn:str="Path",sheetName:Optional[str]=None) -> Worklist:
    filename = Path(filename)
    if not filename.exists():
        raise WorklistException("Worklist {} does not exist".format(filename))

    if filename.suffix.lower() in SPREADSHEET_SUFFIXES:
        wb = openpyxl.load_workbook(filename,read_only=True,data_only=True)
        try:
            if sheetName is None:
                ws = wb.active
            elif sheetName in wb.sheetnames:
                ws = wb[sheetName]
            else:
                raise WorklistException("Sheet \"{}\" not found in {}".format(sheetName,filename))
            worklist = parse_rows(ws.iter_rows(values_only=True),hostColumn,pathColumn,filename)
        finally:
            wb.close()
    elif filename.suffix.lower() == ".csv":
        with open(filename,"r",newline="",encoding="utf-8-sig") as f:
            worklist = parse_rows(csv.reader(f),hostColumn,pathColumn,filename)
    else:
        raise WorklistException("Do not know how to read a worklist of type \"{}\"".format(filename.suffix))

    logger.info("Read {} work items from {} rows of {}".format(len(worklist.items),worklist.totalRows,filename))
    return worklist
