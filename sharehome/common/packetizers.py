class Packetizer:
	"""Pass-through packetizer, HTTP framing is done by h11 on top of it"""
	def __init__(self, buffer_size = 65535):
		self.buffer_size = buffer_size

	async def data_out(self, data):
		yield data

	async def data_in(self, data):
		yield data
