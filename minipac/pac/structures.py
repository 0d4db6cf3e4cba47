
# https://docs.microsoft.com/en-us/openspecs/windows_protocols/ms-pac/166d8064-c863-41e1-9c23-edaaa5f36962
#
# All integers on the wire are little-endian. Every read is bounds checked,
# the PAC usually comes from a ticket an attacker can forge.
from __future__ import annotations
import io
from typing import List

from minipac.protocol.constants import PAC_VERSION, PAC_BUFFER_TYPE, \
	PAC_HEADER_SIZE, PAC_INFO_BUFFER_SIZE, PAC_SIGNATURE_TYPE_SIZE, ChecksumType
from minipac.protocol.errors import MalformedTokenError, InvalidVersionError


def read_exact(buff, n, what = 'data'):
	data = buff.read(n)
	if len(data) != n:
		raise MalformedTokenError('Unexpected end of data while reading %s' % what)
	return data


class BufferRange:
	"""Half-open byte range [start, end) inside the raw PAC"""
	def __init__(self, start:int, end:int):
		self.start = start
		self.end = end

	def __len__(self):
		return self.end - self.start

	def __eq__(self, other):
		if not isinstance(other, BufferRange):
			return NotImplemented
		return self.start == other.start and self.end == other.end

	def __repr__(self):
		return 'BufferRange(%d, %d)' % (self.start, self.end)


class PACTYPE:
	def __init__(self):
		self.cBuffers:int = None
		self.Version:int = PAC_VERSION
		self.Buffers:List[PAC_INFO_BUFFER] = []

	@staticmethod
	def from_bytes(data:bytes) -> PACTYPE:
		return PACTYPE.from_buffer(io.BytesIO(data))

	@staticmethod
	def from_buffer(buff) -> PACTYPE:
		"""Reads the header and the whole buffer directory"""
		pt = PACTYPE()
		pt.cBuffers = int.from_bytes(read_exact(buff, 4, 'cBuffers'), byteorder='little', signed = False)
		pt.Version = int.from_bytes(read_exact(buff, 4, 'Version'), byteorder='little', signed = False)
		if pt.Version != PAC_VERSION:
			raise InvalidVersionError(pt.Version)
		for _ in range(pt.cBuffers):
			pt.Buffers.append(PAC_INFO_BUFFER.from_buffer(buff))
		return pt

	def to_bytes(self) -> bytes:
		t = len(self.Buffers).to_bytes(4, byteorder='little', signed = False)
		t += self.Version.to_bytes(4, byteorder='little', signed = False)
		for infobuffer in self.Buffers:
			t += infobuffer.to_bytes()
		return t

	def directory_size(self) -> int:
		return PAC_HEADER_SIZE + len(self.Buffers) * PAC_INFO_BUFFER_SIZE


class PAC_INFO_BUFFER:
	def __init__(self, ulType:int = None, cbBufferSize:int = None, Offset:int = None):
		self.ulType = ulType
		self.cbBufferSize = cbBufferSize
		self.Offset = Offset

	@staticmethod
	def from_bytes(data:bytes) -> PAC_INFO_BUFFER:
		return PAC_INFO_BUFFER.from_buffer(io.BytesIO(data))

	@staticmethod
	def from_buffer(buff) -> PAC_INFO_BUFFER:
		ib = PAC_INFO_BUFFER()
		ib.ulType = int.from_bytes(read_exact(buff, 4, 'ulType'), byteorder='little', signed = False)
		ib.cbBufferSize = int.from_bytes(read_exact(buff, 4, 'cbBufferSize'), byteorder='little', signed = False)
		ib.Offset = int.from_bytes(read_exact(buff, 8, 'Offset'), byteorder='little', signed = False)
		return ib

	def to_bytes(self) -> bytes:
		t = self.ulType.to_bytes(4, byteorder='little', signed = False)
		t += self.cbBufferSize.to_bytes(4, byteorder='little', signed = False)
		t += self.Offset.to_bytes(8, byteorder='little', signed = False)
		return t

	def get_range(self, total_length:int) -> BufferRange:
		"""Returns the range this descriptor points to, checked against total_length"""
		end = self.Offset + self.cbBufferSize
		if end > total_length:
			raise MalformedTokenError(
				'Buffer type 0x%x at offset %d with size %d exceeds PAC length %d' % (self.ulType, self.Offset, self.cbBufferSize, total_length)
			)
		return BufferRange(self.Offset, end)

	def get_data(self, data:bytes) -> bytes:
		r = self.get_range(len(data))
		return data[r.start:r.end]

	def get_type_name(self) -> str:
		try:
			return PAC_BUFFER_TYPE(self.ulType).name
		except ValueError:
			return 'UNKNOWN_0x%x' % self.ulType

	def __str__(self):
		return '%s size: %d offset: %d' % (self.get_type_name(), self.cbBufferSize, self.Offset)


class PAC_SIGNATURE_DATA:
	def __init__(self, SignatureType:int = None, Signature:bytes = b''):
		self.SignatureType = SignatureType
		self.Signature = Signature

	@staticmethod
	def from_bytes(data:bytes) -> PAC_SIGNATURE_DATA:
		if len(data) < PAC_SIGNATURE_TYPE_SIZE:
			raise MalformedTokenError('Signature buffer is %d bytes, needs at least %d' % (len(data), PAC_SIGNATURE_TYPE_SIZE))
		return PAC_SIGNATURE_DATA.from_buffer(io.BytesIO(data))

	@staticmethod
	def from_buffer(buff) -> PAC_SIGNATURE_DATA:
		sig = PAC_SIGNATURE_DATA()
		# signed, HMAC_MD5 is -138 on the wire
		sig.SignatureType = int.from_bytes(read_exact(buff, 4, 'SignatureType'), byteorder='little', signed = True)
		sig.Signature = buff.read()
		return sig

	def to_bytes(self) -> bytes:
		t = self.SignatureType.to_bytes(4, byteorder='little', signed = True)
		t += self.Signature
		return t

	def get_type_name(self) -> str:
		try:
			return ChecksumType(self.SignatureType).name
		except ValueError:
			return 'UNKNOWN_%d' % self.SignatureType

	def __str__(self):
		return '%s %s' % (self.get_type_name(), self.Signature.hex())
