import logging
import os
import posixpath
import shutil
import stat
import sys
from abc import ABC, abstractmethod

import paramiko

logger = logging.getLogger(__name__)

class RemoteFilesystem(ABC):
    """
    The handful of filesystem operations a deletion run needs from a host.
    An instance is bound to one host connection and must be closed when the batch is done.
    """
    @abstractmethod
    def exists(self, path:str) -> bool: pass
    @abstractmethod
    def removeTree(self, path:str) -> None:
        "Delete a file, symlink or whole directory tree without asking. Raises if the path could not be removed."
        pass
    def close(self) -> None: pass

#============================================================================================
# SFTP
#============================================================================================
class SFTPFilesystem(RemoteFilesystem):
    def __init__(self, connection:paramiko.SSHClient, sftp_client:paramiko.SFTPClient):
        self.connection = connection
        self.sftp_client = sftp_client
    def exists(self, path:str) -> bool:
        try:
            self.sftp_client.lstat(path)
            return True
        except FileNotFoundError:
            return False
    def removeTree(self, path:str) -> None:
        attrs = self.sftp_client.lstat(path)
        if stat.S_ISDIR(attrs.st_mode):
            self.__recursiveDelete(path)
            logger.info("Cleaned up remote folder : {}".format(path))
        else:
            self.sftp_client.remove(path)
            logger.info("Cleaned up remote file : {}".format(path))
    def __recursiveDelete(self, path:str) -> None:
        """Removes as much of the tree as it can, then raises the first failure if anything was left behind."""
        firstFailure = None
        for entry in self.sftp_client.listdir_attr(path):
            entryPath = posixpath.join(path, entry.filename)
            try:
                if stat.S_ISDIR(entry.st_mode):
                    self.__recursiveDelete(entryPath)
                else:
                    self.sftp_client.remove(entryPath)
            except FileNotFoundError:
                #something else removed it while we were walking the tree, that is what we wanted anyway
                logger.debug("Entry vanished during delete : {}".format(entryPath))
            except OSError as e:
                logger.debug("Could not remove {} : {}".format(entryPath,e))
                if firstFailure is None:
                    firstFailure = e
        if firstFailure is not None:
            raise firstFailure
        self.sftp_client.rmdir(path)
    def close(self) -> None:
        try:
            self.sftp_client.close()
        finally:
            self.connection.close()

#============================================================================================
# Local machine
#============================================================================================
def _collect_failures(failures:list):
    def __onError(function, path, error):
        # shutil.rmtree hands us either the exception (onexc) or an exc_info tuple (onerror)
        if isinstance(error, tuple):
            error = error[1]
        if isinstance(error, FileNotFoundError):
            logger.debug("Entry vanished during delete : {}".format(path))
            return
        logger.debug("Could not remove {} : {}".format(path,error))
        failures.append(error)
    return __onError

class LocalFilesystem(RemoteFilesystem):
    def exists(self, path:str) -> bool:
        return os.path.lexists(path)
    def removeTree(self, path:str) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            failures = []
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=_collect_failures(failures))
            else:
                shutil.rmtree(path, onerror=_collect_failures(failures))
            if len(failures) > 0:
                # rmtree keeps going past a failed entry, report the first thing that blocked it
                raise failures[0]
            logger.info("Cleaned up local folder : {}".format(path))
        else:
            os.remove(path)
            logger.info("Cleaned up local file : {}".format(path))
