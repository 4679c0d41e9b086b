import logging
import traceback
from datetime import datetime
from threading import RLock, Thread
from typing import List, Optional

from fastapi import FastAPI, status
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from .dispatch import Dispatcher
from .models import ItemResult, RunErrors, WorkItem
from .report import RunSummary, render_html_report, summarize
from .settings import RunSettings

"""
The web api for running wipes from a service instead of the command line.
A run is started in its own thread and the most recent run is kept in LastRun for the GET endpoints.
Only one run at a time; asking for another while one is going gets a 409.
"""

logger = logging.getLogger(__name__)

class WorkItemModel(BaseModel):
    host:str
    path:str
class RunRequest(BaseModel):
    items:List[WorkItemModel]
    totalRows:Optional[int] = None
class RunStatus(BaseModel):
    running:bool = False
    started:Optional[datetime] = None
    finished:Optional[datetime] = None
    failure:Optional[str] = None
class SummaryModel(BaseModel):
    total:int = 0
    removed:int = 0
    failed:int = 0
    gone:int = 0
    hostFailures:int = 0

class LastRun:
    """
    Holds the state of the latest run. Written by the run thread, read by the request handlers.
    Please go through the classmethods so the lock is held.
    """
    running:bool = False
    started:Optional[datetime] = None
    finished:Optional[datetime] = None
    failure:Optional[str] = None
    results:List[ItemResult] = []
    errors:RunErrors = RunErrors()
    summary:RunSummary = RunSummary()

    __editlock = RLock()

    @classmethod
    def tryStart(cls) -> bool:
        with cls.__editlock:
            if cls.running:
                return False
            cls.running = True
            cls.started = datetime.now()
            cls.finished = None
            cls.failure = None
            cls.results = []
            cls.errors = RunErrors()
            cls.summary = RunSummary()
            return True
    @classmethod
    def finish(cls,results:List[ItemResult],summary:RunSummary,failure:Optional[str]=None) -> None:
        with cls.__editlock:
            cls.results = list(results)
            cls.summary = summary
            cls.failure = failure
            cls.finished = datetime.now()
            cls.running = False
    @classmethod
    def getStatus(cls) -> dict:
        with cls.__editlock:
            return {"running":cls.running,"started":cls.started,"finished":cls.finished,"failure":cls.failure}
    @classmethod
    def getResults(cls) -> List[ItemResult]:
        with cls.__editlock:
            return list(cls.results)
    @classmethod
    def getSummary(cls) -> RunSummary:
        with cls.__editlock:
            return cls.summary
    @classmethod
    def getErrors(cls) -> RunErrors:
        with cls.__editlock:
            return cls.errors

def run_in_background(settings:RunSettings,items:List[WorkItem],totalRows:int) -> Thread:
    """LastRun.tryStart() must have succeeded before calling this."""
    errors = LastRun.getErrors()
    def __run():
        results = []
        failure = None
        try:
            dispatcher = Dispatcher(settings.hosts,settings.isolateHostFailures,settings.recheckAfterFailure)
            results = dispatcher.dispatch(items,errors)
        except Exception as e:
            results = getattr(e,"partialResults",[])
            failure = "{} : {}".format(getattr(e,"host","unknown host"),e)
            logger.error("Remote deletion run failed : {}".format(failure))
            logger.debug(traceback.format_exc())
        finally:
            # whatever happened above, the run has to stop being "running"
            summary = RunSummary()
            try:
                summary = summarize(results,totalRows,errors)
            except Exception as e:
                logger.error("Could not summarize the run : {}".format(e))
                if failure is None:
                    failure = "summary failed : {}".format(e)
            LastRun.finish(results,summary,failure)
    thread = Thread(target=__run)
    thread.daemon = True
    thread.start()
    return thread

def registerEndpoints(app:FastAPI,settings:RunSettings):
    @app.post("/wipe/json/run",tags=["wipe"])
    def start_run(request:RunRequest):
        if not LastRun.tryStart():
            return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"Issue":"A run is already in progress."})
        items = [WorkItem(i.host,i.path) for i in request.items]
        totalRows = request.totalRows if request.totalRows is not None else len(items)
        run_in_background(settings,items,totalRows)
        return {"started" : True, "items" : len(items)}

    @app.get("/wipe/json/status",tags=["wipe"])
    def run_status() -> RunStatus:
        return LastRun.getStatus()

    @app.get("/wipe/json/results",tags=["wipe"])
    def run_results():
        return [r.toDict() for r in LastRun.getResults()]

    @app.get("/wipe/json/summary",tags=["wipe"])
    def run_summary() -> SummaryModel:
        return LastRun.getSummary().toDict()

    @app.get("/wipe",tags=["wipe"],response_class=HTMLResponse)
    def report_page():
        return render_html_report(LastRun.getResults(),LastRun.getSummary(),LastRun.getErrors())
