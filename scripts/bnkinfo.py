#!/usr/bin/env python3
import sys
import os
import logging

from bnkstruct.wwise import SoundBank

if 'DEBUG' in os.environ:
    logging.basicConfig()
    logger = logging.getLogger('bnkstruct')
    logger.setLevel(logging.DEBUG)


def usage(progname):
    print('usage: %s <bnk file>' % progname)
    sys.exit(1)


def dump_header(bnk):
    if bnk.bank_header is None:
        print('No bank header')
        return

    descriptor = bnk.bank_header.descriptor
    print(f'''Bank Header:
  Version:                           {descriptor.version.value}
  Bank ID:                           {descriptor.bank_id.value}
  Extra data:                        {len(bnk.bank_header.remaining)} (bytes)''')


def dump_sections(bnk):
    print('''Sections:
  [Nr] Id     Offset     Size''')
    for idx, section in enumerate(bnk.sections):
        print(f'''  [{idx: >2d}] {section.identifier.decode("latin1"):<6} 0x{section.offset:08x} {section.size}''')


def dump_wems(bnk):
    print(f'''Wems ({bnk.wem_count} entries):
  [Nr]  Id         Offset     Length     Padding''')
    for idx, wem in enumerate(bnk.wems):
        print(f'''  [{idx + 1:03d}] {wem.wem_id:<10d} 0x{wem.offset:08x} {wem.length:<10d} {wem.padding_length}''')


if __name__ == '__main__':
    if len(sys.argv) < 2:
        usage(sys.argv[0])

    path = sys.argv[1]

    with SoundBank.open(path) as bnk:
        print(bnk)
        dump_header(bnk)
        dump_sections(bnk)
        dump_wems(bnk)
