# Copyright (C) 2013 by the Massachusetts Institute of Technology.
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions
# are met:
#
# * Redistributions of source code must retain the above copyright
#   notice, this list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright
#   notice, this list of conditions and the following disclaimer in
#   the documentation and/or other materials provided with the
#   distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS
# "AS IS" AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT
# LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE ARE DISCLAIMED. IN NO EVENT SHALL THE
# COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE FOR ANY DIRECT,
# INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL DAMAGES
# (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED
# OF THE POSSIBILITY OF SUCH DAMAGE.

# Keyed checksums only. PAC validation never encrypts or decrypts, so the
# enctype profiles below carry just what key derivation needs.
#   - AES128/AES256 simplified profile checksums (RFC 3962)
#   - RC4 HMAC-MD5 checksum (RFC 4757)

from math import gcd
from functools import reduce
from struct import pack

from unicrypto import hashlib
from unicrypto import hmac as HMAC
from unicrypto.symmetric import AES, MODE_CBC


class Enctype(object):
	AES128 = 17
	AES256 = 18
	RC4 = 23


class Cksumtype(object):
	SHA1_AES128 = 15
	SHA1_AES256 = 16
	HMAC_MD5 = -138


class InvalidChecksum(ValueError):
	pass


def _zeropad(s, padsize):
	# Return s padded with 0 bytes to a multiple of padsize.
	padlen = (padsize - (len(s) % padsize)) % padsize
	return s + b'\x00'*padlen


def _mac_equal(mac1, mac2):
	# Constant-time comparison function. Runs over the full common length
	# even when the lengths differ.
	res = len(mac1) ^ len(mac2)
	for x, y in zip(mac1, mac2):
		res |= x ^ y
	return res == 0


def _nfold(str, nbytes):
	# Convert str to a string of length nbytes using the RFC 3961 nfold
	# operation.

	# Rotate the bytes in str to the right by nbits bits.
	def rotate_right(str, nbits):
		nbytes, remain = (nbits//8) % len(str), nbits % 8
		return bytes([(str[i-nbytes] >> remain) | (str[i-nbytes-1] << (8-remain) & 0xff) for i in range(len(str))])

	# Add equal-length strings together with end-around carry.
	def add_ones_complement(str1, str2):
		n = len(str1)
		v = [a + b for a, b in zip(str1, str2)]
		# Propagate carry bits to the left until there aren't any left.
		while any(x & ~0xff for x in v):
			v = [(v[i-n+1]>>8) + (v[i]&0xff) for i in range(n)]
		return bytes(v)

	# Concatenate copies of str to produce the least common multiple
	# of len(str) and nbytes, rotating each copy of str to the right
	# by 13 bits times its list position.  Decompose the concatenation
	# into slices of length nbytes, and add them together as
	# big-endian ones' complement integers.
	slen = len(str)
	lcm = nbytes * slen // gcd(nbytes, slen)
	bigstr = b''.join((rotate_right(str, 13 * i) for i in range(lcm // slen)))
	slices = (bigstr[p:p+nbytes] for p in range(0, lcm, nbytes))
	return reduce(add_ones_complement, slices)


class _EnctypeProfile(object):
	# Base class for enctype profiles.  Usable enctype classes must define:
	#   * enctype: enctype number
	#   * keysize: protocol size of key in bytes
	#   * seedsize: random_to_key input size in bytes

	@classmethod
	def random_to_key(cls, seed):
		if len(seed) != cls.seedsize:
			raise ValueError('Wrong seed length')
		return Key(cls.enctype, seed)


class _SimplifiedEnctype(_EnctypeProfile):
	# Base class for enctypes using the RFC 3961 simplified profile.
	# Subclasses must define:
	#   * blocksize: Underlying cipher block size in bytes
	#   * macsize: Size of integrity MAC in bytes
	#   * hashmod: hash constructor for underlying hash function
	#   * basic_encrypt: Underlying CBC/CTS cipher

	@classmethod
	def derive(cls, key, constant):
		# RFC 3961 only says to n-fold the constant only if it is
		# shorter than the cipher block size.  But all Unix
		# implementations n-fold constants if their length is larger
		# than the block size as well, and n-folding when the length
		# is equal to the block size is a no-op.
		plaintext = _nfold(constant, cls.blocksize)
		rndseed = b''
		while len(rndseed) < cls.seedsize:
			ciphertext = cls.basic_encrypt(key, plaintext)
			rndseed += ciphertext
			plaintext = ciphertext
		return cls.random_to_key(rndseed[0:cls.seedsize])


class _AESEnctype(_SimplifiedEnctype):
	# Base class for aes128-cts and aes256-cts.
	blocksize = 16
	macsize = 12
	hashmod = hashlib.sha1

	@classmethod
	def basic_encrypt(cls, key, plaintext):
		assert len(plaintext) >= 16
		aes = AES(key.contents, MODE_CBC, b'\x00'*16)
		ctext = aes.encrypt(_zeropad(plaintext, 16))
		if len(plaintext) > 16:
			# Swap the last two ciphertext blocks and truncate the
			# final block to match the plaintext length.
			lastlen = len(plaintext) % 16 or 16
			ctext = ctext[:-32] + ctext[-16:] + ctext[-32:-16][:lastlen]
		return ctext


class _AES128CTS(_AESEnctype):
	enctype = Enctype.AES128
	keysize = 16
	seedsize = 16


class _AES256CTS(_AESEnctype):
	enctype = Enctype.AES256
	keysize = 32
	seedsize = 32


class _RC4(_EnctypeProfile):
	enctype = Enctype.RC4
	keysize = 16
	seedsize = 16

	@staticmethod
	def usage_str(keyusage):
		# Return a four-byte string for an RFC 3961 keyusage, using
		# the RFC 4757 rules.  Per the errata, do not map 9 to 8.
		table = {3: 8, 23: 13}
		msusage = table[keyusage] if keyusage in table else keyusage
		return pack('<i', msusage)


class _ChecksumProfile(object):
	# Base class for checksum profiles.  Usable checksum classes must
	# define:
	#   * checksum
	#   * verify (if verification is not just checksum-and-compare)
	#   * checksum_len
	@classmethod
	def verify(cls, key, keyusage, text, cksum):
		expected = cls.checksum(key, keyusage, text)
		if not _mac_equal(cksum, expected):
			raise InvalidChecksum('checksum verification failure')


class _SimplifiedChecksum(_ChecksumProfile):
	# Base class for checksums using the RFC 3961 simplified profile.
	# Subclasses must define:
	#   * macsize: Size of checksum in bytes
	#   * enc: Profile of associated enctype

	@classmethod
	def checksum(cls, key, keyusage, text):
		if key.enctype != cls.enc.enctype:
			raise ValueError('Wrong key type for checksum')
		kc = cls.enc.derive(key, pack('>iB', keyusage, 0x99))
		hmac = HMAC.new(kc.contents, text, cls.enc.hashmod).digest()
		return hmac[:cls.macsize]

	@classmethod
	def checksum_len(cls):
		return cls.macsize


class _SHA1AES128(_SimplifiedChecksum):
	macsize = 12
	enc = _AES128CTS


class _SHA1AES256(_SimplifiedChecksum):
	macsize = 12
	enc = _AES256CTS


class _HMACMD5(_ChecksumProfile):
	# The key type is not checked: legacy PAC signatures are keyed with
	# whatever the service key happens to be.
	@classmethod
	def checksum(cls, key, keyusage, text):
		ksign = HMAC.new(key.contents, b'signaturekey\0', hashlib.md5).digest()
		md5hash = hashlib.md5(_RC4.usage_str(keyusage) + text).digest()
		return HMAC.new(ksign, md5hash, hashlib.md5).digest()

	@classmethod
	def checksum_len(cls):
		return 16


_enctype_table = {
	Enctype.AES128: _AES128CTS,
	Enctype.AES256: _AES256CTS,
	Enctype.RC4: _RC4,
}


_checksum_table = {
	Cksumtype.SHA1_AES128: _SHA1AES128,
	Cksumtype.SHA1_AES256: _SHA1AES256,
	Cksumtype.HMAC_MD5: _HMACMD5,
}


def _get_enctype_profile(enctype):
	if enctype not in _enctype_table:
		raise ValueError('Invalid enctype %d' % enctype)
	return _enctype_table[enctype]


def _get_checksum_profile(cksumtype):
	if cksumtype not in _checksum_table:
		raise ValueError('Invalid cksumtype %d' % cksumtype)
	return _checksum_table[cksumtype]


class Key(object):
	def __init__(self, enctype, contents):
		e = _get_enctype_profile(enctype)
		if len(contents) != e.keysize:
			raise ValueError('Wrong key length')
		self.enctype = enctype
		self.contents = contents

	@staticmethod
	def from_asn1(enckey):
		"""Builds a key from an EncryptionKey structure (asn1 object or its native dict)"""
		if not isinstance(enckey, dict):
			enckey = enckey.native
		return Key(enckey['keytype'], enckey['keyvalue'])

	def __repr__(self):
		return 'Key(enctype=%s, contents=%s)' % (self.enctype, self.contents.hex())


def make_checksum(cksumtype, key, keyusage, text):
	c = _get_checksum_profile(cksumtype)
	return c.checksum(key, keyusage, text)


def verify_checksum(cksumtype, key, keyusage, text, cksum):
	# Throw InvalidChecksum exception on checksum failure.  Throw
	# ValueError on invalid cksumtype, invalid key enctype, or
	# malformed checksum.
	c = _get_checksum_profile(cksumtype)
	c.verify(key, keyusage, text, cksum)


def checksum_len(cksumtype):
	c = _get_checksum_profile(cksumtype)
	return c.checksum_len()
