import asyncio
import copy

from sharehome import logger
from sharehome.common.target import UniTarget, UniProto
from sharehome.common.packetizers import Packetizer
from sharehome.common.connection import UniConnection


class UniServer:
	def __init__(self, target:UniTarget, packetizer:Packetizer):
		self.target = target
		self.packetizer = packetizer
		self.connection_queue = asyncio.Queue()
		self.bind_evt = asyncio.Event()
		self.sockname = None

	async def __handle_connection(self, reader, writer):
		packetizer = copy.deepcopy(self.packetizer)
		connection = UniConnection(reader, writer, packetizer)
		await self.connection_queue.put(connection)

	async def serve(self):
		server = None
		try:
			if self.target.protocol == UniProto.SERVER_TCP:
				ssl_ctx = None
			elif self.target.protocol == UniProto.SERVER_SSL_TCP:
				ssl_ctx = self.target.get_ssl_context()
			else:
				raise Exception('Unknown protocol "%s"' % self.target.protocol)

			server = await asyncio.start_server(
				self.__handle_connection,
				self.target.get_ip_or_hostname(),
				self.target.port,
				ssl = ssl_ctx
			)
			self.sockname = server.sockets[0].getsockname()
			logger.debug('Listening on %s:%s' % (self.sockname[0], self.sockname[1]))
			self.bind_evt.set()
			while server.is_serving():
				connection = await self.connection_queue.get()
				yield connection
		finally:
			if server is not None:
				server.close()
