import enum
import ipaddress

from sharehome.common.unissl import UniSSL

class UniProto(enum.Enum):
	SERVER_TCP = 6
	SERVER_SSL_TCP = 7

class UniTarget:
	def __init__(self, ip:str, port:int, protocol:UniProto, ssl_ctx:UniSSL = None, hostname:str = None):
		self.hostname = hostname
		self.port = port
		self.protocol = protocol
		self.ssl_ctx = ssl_ctx

		try:
			ipaddress.ip_address(ip)
			self.ip = ip
		except ValueError:
			if ip is not None:
				self.hostname = ip
			self.ip = None

		if ip is None and hostname is None:
			raise Exception('Both IP and Hostname can\'t be none!')

	def get_ssl_context(self):
		if self.ssl_ctx is None:
			self.ssl_ctx = UniSSL.get_selfsigned_context(self.get_hostname_or_ip())
		return self.ssl_ctx.get_ssl_context()

	def get_ip_or_hostname(self):
		if self.ip is not None:
			return self.ip
		return self.hostname

	def get_hostname_or_ip(self):
		if self.hostname is not None:
			return self.hostname
		return self.ip

	def get_url(self):
		scheme = 'https' if self.protocol == UniProto.SERVER_SSL_TCP else 'http'
		host = self.get_ip_or_hostname()
		if self.ip is not None and ipaddress.ip_address(self.ip).version == 6:
			host = '[%s]' % host
		return '%s://%s:%s/' % (scheme, host, self.port)

	def __str__(self):
		t = '==== UniTarget ====\r\n'
		for k in self.__dict__:
			t += '%s: %s\r\n' % (k, self.__dict__[k])
		return t
