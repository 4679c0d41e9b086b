#For when a host cannot be reached or refuses our credentials. This fails the whole host, not a single path.
class HostConnectionException(Exception): pass

#The host config does not know how to produce a filesystem for this host.
class UnknownHostException(Exception): pass
