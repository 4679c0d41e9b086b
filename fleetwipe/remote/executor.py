import logging
from datetime import datetime
from typing import List, Optional, Sequence

from ..models import ItemResult, RemovalAction, RunErrors
from .filesystems import RemoteFilesystem

logger = logging.getLogger(__name__)

PATH_NOT_FOUND = "Path not found"

class RemoteExecutor:
    """
    Runs the deletions of one host batch against that host's filesystem.

    Every path gets exactly one ItemResult. Problems with a single path end up in that result's `error`
    and never stop the rest of the batch, so execute() does not raise for anything path related.
    Failing to reach the host at all is not our concern here, that happens before we get a filesystem.

    By default a failed delete is not checked again and `existsAfter` stays True.
    Set recheckAfterFailure to look at the path again after a failure instead.
    """
    def __init__(self,host:str,filesystem:RemoteFilesystem,errors:Optional[RunErrors]=None,recheckAfterFailure:bool=False):
        self.host = host
        self.filesystem = filesystem
        self.errors = errors
        self.recheckAfterFailure = recheckAfterFailure
    def __repr__(self):
        return "{}({})".format(self.__class__.__name__,self.host)

    def execute(self,paths:Sequence[str]) -> List[ItemResult]:
        return [self.__processPath(path) for path in paths]

    def __processPath(self,path:str) -> ItemResult:
        timestamp = datetime.now().astimezone()
        try:
            existedBefore = self.filesystem.exists(path)
        except Exception as e:
            # could not even look at it, treat like a failed delete of something that is there
            return self.__failed(path,timestamp,e)
        if not existedBefore:
            logger.debug("{} : path not found : {}".format(self.host,path))
            self.__recordError(path,PATH_NOT_FOUND)
            return ItemResult(self.host,path,timestamp,False,False,RemovalAction.NONE,PATH_NOT_FOUND)

        try:
            self.filesystem.removeTree(path)
        except Exception as e:
            return self.__failed(path,timestamp,e)

        try:
            existsAfter = self.filesystem.exists(path)
        except Exception as e:
            return self.__failed(path,timestamp,e)
        if existsAfter:
            logger.warning("{} : {} still exists after it was removed".format(self.host,path))
        return ItemResult(self.host,path,timestamp,True,existsAfter,RemovalAction.REMOVED,None)

    def __failed(self,path:str,timestamp:datetime,failure:Exception) -> ItemResult:
        message = str(failure) or failure.__class__.__name__
        logger.warning("{} : failed to remove {} : {}".format(self.host,path,message))
        self.__recordError(path,message)
        existsAfter = True
        if self.recheckAfterFailure:
            try:
                existsAfter = self.filesystem.exists(path)
            except Exception:
                logger.debug("{} : could not recheck {} after the failure".format(self.host,path))
        return ItemResult(self.host,path,timestamp,True,existsAfter,RemovalAction.REMOVED,message)

    def __recordError(self,path:str,message:str) -> None:
        if self.errors is not None:
            self.errors.recordPathError(self.host,path,message)
