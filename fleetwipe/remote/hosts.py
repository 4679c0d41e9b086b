import logging
import netrc
import socket
from abc import abstractmethod

import paramiko
import paramiko.hostkeys
from paramiko.ssh_exception import SSHException

from ..serialize import Serializable
from .exceptions import HostConnectionException
from .filesystems import LocalFilesystem, RemoteFilesystem, SFTPFilesystem

logger = logging.getLogger(__name__)

class HostConfig(Serializable):
    """Common interface of every host entry in the settings file."""
    @abstractmethod
    def connect(self) -> RemoteFilesystem:
        "Open a filesystem on the host. Raises HostConnectionException if the host cannot be reached."
        pass

class LocalHostConfig(HostConfig):
    """Deletes on the machine fleetwipe itself runs on. Useful for 'localhost' rows and for testing."""
    yaml_tag = u"!LocalHostConfig"
    def __init__(self):
        pass
    def __repr__(self) -> str:
        return "{}()".format(self.__class__.__name__)
    def connect(self) -> RemoteFilesystem:
        return LocalFilesystem()

class SSHHostConfig(HostConfig):
    yaml_tag = u"!SSHHostConfig"
    def __init__(self,hostname:str,username:str=None,port:int=22,key_filename:str=None,password:str=None,hostkey:str=None,timeout:int=10):
        self.hostname = hostname
        self.username = username
        self.port = port
        self.key_filename = key_filename
        self.password = password
        self.hostkey = hostkey # known_hosts style line for the server, filled in on first connection
        self.timeout = timeout
    def __repr__(self) -> str:
        return "{}({}:{})".format(self.__class__.__name__,self.hostname,self.port)

    def connect(self) -> RemoteFilesystem:
        connection = paramiko.SSHClient()
        try:
            self.__connectWithHostkeys(connection)
            sftp_client = connection.open_sftp()
        except (SSHException, socket.error) as e:
            connection.close()
            raise HostConnectionException("Unable to connect to {} : {}".format(self.hostname, e)) from e
        except Exception:
            connection.close()
            raise
        return SFTPFilesystem(connection, sftp_client)

    def __credentials(self):
        username = self.username
        password = self.password
        #if no password was given, they may have put it in their .netrc file
        #only look it up if both username and password are missing or they have directly asked to use netrc
        if (username is None and password is None) or username == "netrc":
            try:
                entry = netrc.netrc().authenticators(self.hostname)
            except (FileNotFoundError, netrc.NetrcParseError):
                entry = None
            if entry is not None:
                username,_,password = entry
            elif username == "netrc":
                username = None
        return username, password

    def __connectWithHostkeys(self, connection:paramiko.SSHClient) -> None:
        #hostkeys are fingerprints of servers, either from the user's known_hosts or the line saved in the settings file
        connection.load_system_host_keys()
        keystore = connection.get_host_keys()
        if isinstance(self.hostkey, str) and len(self.hostkey) > 0:
            try:
                entry = paramiko.hostkeys.HostKeyEntry.from_line(self.hostkey)
            except (SSHException, paramiko.hostkeys.InvalidHostKey):
                entry = None
            if entry is None:
                logger.warning("Saved hostkey for {} is not valid. It will be ignored and learned again on connection.".format(self.hostname))
            else:
                for name in entry.hostnames:
                    keystore.add(name, entry.key.get_name(), entry.key)

        hasHostKey = keystore.lookup(self.hostname) is not None
        if not hasHostKey:
            #first time connecting, so we trust the key the server gives us and remember it
            connection.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        username, password = self.__credentials()
        connection.connect(
            hostname = self.hostname,
            port = self.port,
            username = username,
            key_filename = self.key_filename,
            password = password,
            timeout = self.timeout
        )

        if not hasHostKey:
            keys = keystore.lookup(self.hostname)
            if keys is None: return
            key = keys[list(keys.keys())[0]]
            self.hostkey = paramiko.hostkeys.HostKeyEntry([self.hostname],key).to_line().strip()
            logger.info("Learned hostkey for {}".format(self.hostname))
