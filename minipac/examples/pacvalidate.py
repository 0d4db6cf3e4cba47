#!/usr/bin/env python3
#
# Author:
#  Tamas Jos (@skelsec)
#
import sys
import logging

from minipac import logger
from minipac.pac.pac import PAC
from minipac.protocol.encryption import Key
from minipac.protocol.errors import PacError
from minipac.protocol.constants import EncryptionType


def load_pac(fpath, is_hex = False):
	with open(fpath, 'rb') as f:
		data = f.read()
	if is_hex is True:
		data = bytes.fromhex(data.decode().strip())
	return data

def pacvalidate(data, key, kdc_key = None):
	pac = PAC.validate(data, key, kdc_key = kdc_key)
	print(str(pac))
	if pac.logon_info is None:
		print('Logon info: not present')
	else:
		print('Logon info: %d bytes' % len(pac.logon_info))
	print('Server signature OK')
	if kdc_key is not None:
		print('KDC signature OK')
	return pac

def main():
	import argparse

	parser = argparse.ArgumentParser(description='Validates the signatures of a PAC blob')
	parser.add_argument('pac', help='file holding the PAC')
	parser.add_argument('key', help='service key in hex')
	parser.add_argument('--hex', action='store_true', help='PAC file is hex encoded')
	parser.add_argument('-e', '--etype', type=int, default=EncryptionType.ARCFOUR_HMAC_MD5.value, help='encryption type of the service key')
	parser.add_argument('--kdc-key', help='KDC (krbtgt) key in hex, checks the KDC signature as well')
	parser.add_argument('--kdc-etype', type=int, default=EncryptionType.ARCFOUR_HMAC_MD5.value, help='encryption type of the KDC key')
	parser.add_argument('-v', '--verbose', action='count', default=0)

	args = parser.parse_args()
	if args.verbose == 0:
		logger.setLevel(logging.INFO)
	else:
		logger.setLevel(logging.DEBUG)

	try:
		key = Key(args.etype, bytes.fromhex(args.key))
		kdc_key = None
		if args.kdc_key is not None:
			kdc_key = Key(args.kdc_etype, bytes.fromhex(args.kdc_key))
	except ValueError as e:
		print('Invalid key! %s' % e)
		sys.exit(1)

	logger.debug('Opening file %s' % args.pac)
	data = load_pac(args.pac, args.hex)
	try:
		pacvalidate(data, key, kdc_key)
	except PacError as e:
		print('PAC validation failed! %s' % e)
		sys.exit(1)

if __name__ == '__main__':
	main()
