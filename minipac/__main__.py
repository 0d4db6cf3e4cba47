#!/usr/bin/env python3
#
# Author:
#  Tamas Jos (@skelsec)
#
from minipac.examples.pacvalidate import main

if __name__ == '__main__':
	main()
