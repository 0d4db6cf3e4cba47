#!/usr/bin/env python3
#
# Author:
#  Tamas Jos (@skelsec)
#
import enum

class PacErrorCode(enum.Enum):
	EMPTY_TOKEN = 1 # Input too short to hold the PAC header
	INVALID_VERSION = 2 # Header version is not PAC_VERSION
	MALFORMED_TOKEN = 3 # A descriptor or buffer reaches past the end of the data
	MISSING_SIGNATURE = 4 # Required signature buffer is absent
	CHECKSUM_UNAVAILABLE = 5 # Checksum algorithm or key type is not supported
	SIGNATURE_INVALID = 6 # Computed checksum does not match the stored one

class PacErrorMessage(enum.Enum):
	EMPTY_TOKEN = 'PAC token is empty'
	INVALID_VERSION = 'PAC version is invalid'
	MALFORMED_TOKEN = 'PAC token is malformed'
	MISSING_SIGNATURE = 'PAC signature is missing'
	CHECKSUM_UNAVAILABLE = 'PAC checksum could not be computed'
	SIGNATURE_INVALID = 'PAC signature is invalid'


class PacError(Exception):
	errorcode = None

	def __init__(self, extra_msg = ''):
		self.errormsg = PacErrorMessage[self.errorcode.name]
		self.extra_msg = extra_msg
		msg = self.errormsg.value
		if extra_msg:
			msg = '%s Reason: %s' % (msg, extra_msg)
		super().__init__(msg)

class EmptyTokenError(PacError):
	errorcode = PacErrorCode.EMPTY_TOKEN

class InvalidVersionError(PacError):
	errorcode = PacErrorCode.INVALID_VERSION

	def __init__(self, version):
		self.version = version
		super().__init__('Got version %s' % version)

class MalformedTokenError(PacError):
	errorcode = PacErrorCode.MALFORMED_TOKEN

class MissingSignatureError(PacError):
	errorcode = PacErrorCode.MISSING_SIGNATURE

class ChecksumUnavailableError(PacError):
	errorcode = PacErrorCode.CHECKSUM_UNAVAILABLE

class SignatureInvalidError(PacError):
	errorcode = PacErrorCode.SIGNATURE_INVALID
