from .exceptions import HostConnectionException,UnknownHostException
from .filesystems import RemoteFilesystem,SFTPFilesystem,LocalFilesystem
from .hosts import HostConfig,SSHHostConfig,LocalHostConfig
from .executor import RemoteExecutor,PATH_NOT_FOUND

# How to use:
# 1) describe your hosts with SSHHostConfig (or LocalHostConfig) - usually loaded from the settings yaml
# 2) connect() the host config to get a filesystem for it
# 3) hand the filesystem to a RemoteExecutor and execute() the paths, then close() the filesystem
