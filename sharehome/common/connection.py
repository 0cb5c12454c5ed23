import asyncio
from sharehome.common.packetizers import Packetizer


class UniConnection:
	def __init__(self, reader:asyncio.StreamReader, writer:asyncio.StreamWriter, packetizer:Packetizer, peer_ip:str = None, peer_port:int = None):
		self.reader = reader
		self.writer = writer
		self.packetizer = packetizer
		self.peer_ip = peer_ip #for connection types where reader/writer does not have get_extra_info
		self.peer_port = peer_port
		self.closing = False

	def get_extra_info(self, name, default=None):
		if name == 'peername' and self.peer_ip is not None:
			return (self.peer_ip, self.peer_port)

		if hasattr(self.writer, 'get_extra_info'):
			return self.writer.get_extra_info(name, default)

		return default

	def get_peer_str(self):
		peer = self.get_extra_info('peername')
		if peer is None:
			return 'unknown'
		return '%s:%s' % (peer[0], peer[1])

	async def close(self):
		if self.closing is True:
			return
		self.closing = True
		if self.writer is not None:
			self.writer.close()

	async def write(self, data):
		async for packet in self.packetizer.data_out(data):
			self.writer.write(packet)
			await self.writer.drain()

	async def read_one(self):
		async for packet in self.read():
			return packet
		return b''

	async def read(self):
		while self.closing is False:
			data = await self.reader.read(self.packetizer.buffer_size)
			async for result in self.packetizer.data_in(data):
				yield result
			if data == b'':
				break
