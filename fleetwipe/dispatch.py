import logging
from multiprocessing.pool import ThreadPool
from typing import Dict, Iterable, List, Optional

from .models import HostBatch, ItemResult, RunErrors, WorkItem
from .remote import HostConfig, RemoteExecutor, SSHHostConfig, UnknownHostException

logger = logging.getLogger(__name__)

def group_by_host(items:Iterable[WorkItem]) -> List[HostBatch]:
    """
    Hosts come out in the order they were first seen, paths in the order they were listed for that host.
    Rows missing a host or a path are dropped here, so a host with only blank paths gets no batch at all.
    """
    grouped:Dict[str,List[str]] = {}
    for item in items:
        host = (item.host or "").strip()
        path = item.path or ""
        # paths go through untouched, whitespace can be part of a real name
        if len(host) == 0 or len(path.strip()) == 0:
            logger.debug("Dropping malformed work item {}".format(item))
            continue
        grouped.setdefault(host,[]).append(path)
    return [HostBatch(host,tuple(paths)) for host,paths in grouped.items()]

class Dispatcher:
    """
    Fires one task per host, waits for all of them, and stitches the results back together in the order
    the hosts were started.

    Path level problems come back as data inside the results. A host that cannot be reached raises out of
    dispatch() with `host` and `partialResults` attached to the exception, unless isolateHostFailures is
    set, in which case the failure is only recorded in the RunErrors and the other hosts are still collected.
    There is no timeout, a host that hangs will hang the whole dispatch.
    """
    def __init__(self,hosts:Dict[str,HostConfig]=None,isolateHostFailures:bool=False,recheckAfterFailure:bool=False):
        self.hosts = hosts or {}
        self.isolateHostFailures = isolateHostFailures
        self.recheckAfterFailure = recheckAfterFailure
    def __repr__(self):
        return "{}(Hosts={}, isolateHostFailures={})".format(self.__class__.__name__,len(self.hosts),self.isolateHostFailures)

    def hostConfigFor(self,host:str) -> HostConfig:
        """Hosts missing from the settings are reached over ssh by name with the system keys/agent/netrc."""
        if host in self.hosts:
            config = self.hosts[host]
        else:
            config = SSHHostConfig(host)
        if not isinstance(config,HostConfig):
            raise UnknownHostException("The host config for {} is not a HostConfig : {}".format(host,config))
        return config

    def __runBatchFactory(self,errors:Optional[RunErrors]):
        def __runBatch(batch:HostBatch) -> List[ItemResult]:
            logger.info("Starting {} deletions on {}".format(len(batch.paths),batch.host))
            filesystem = self.hostConfigFor(batch.host).connect()
            try:
                executor = RemoteExecutor(batch.host,filesystem,errors,self.recheckAfterFailure)
                return executor.execute(batch.paths)
            finally:
                filesystem.close()
        return __runBatch

    def dispatch(self,items:Iterable[WorkItem],errors:Optional[RunErrors]=None) -> List[ItemResult]:
        batches = group_by_host(items)
        if len(batches) == 0:
            return []

        runBatch = self.__runBatchFactory(errors)
        pool = ThreadPool(len(batches))
        try:
            # start everything first, then join in the same order so results follow host start order
            pending = [(batch.host, pool.apply_async(runBatch,[batch])) for batch in batches]
            results:List[ItemResult] = []
            for host,task in pending:
                try:
                    batchResults = task.get()
                except Exception as e:
                    logger.error("Host {} failed : {}".format(host,e))
                    if errors is not None:
                        errors.recordHostFailure(host,e)
                    if self.isolateHostFailures:
                        continue
                    e.host = host
                    e.partialResults = results
                    raise
                results.extend(batchResults)
                logger.info("Collected {} results from {}".format(len(batchResults),host))
            return results
        finally:
            pool.close()
            pool.join()
