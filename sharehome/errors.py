class ShareError(Exception):
	"""Failure that maps onto an HTTP status and a plain-text message"""
	status_code = 500

	def __init__(self, message:str, status_code:int = None):
		self.message = message
		if status_code is not None:
			self.status_code = status_code
		super().__init__(self.message)

class BadRequest(ShareError):
	status_code = 400

class InternalError(ShareError):
	status_code = 500

class NotFound(ShareError):
	status_code = 404

	def __init__(self, message:str = 'Not Found'):
		super().__init__(message)
