#!/usr/bin/env python3
'''
Unpack a SoundBank into separated .wem files or repack a set of .wem files
into a SoundBank, using the original as a template.

The wems are named after their position in the bank, starting from one,
i.e. the first wem is "001.wem".

 $ bnkutil.py --unpack -b music.bnk -o music/
 $ bnkutil.py --repack -b music.bnk -t music/ -o music_new.bnk
'''
import argparse
import logging
import os
import re
import sys

from bnkstruct.exceptions import BnkStructException
from bnkstruct.wwise import SoundBank, ReplacementWem


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)

WEM_FILENAME_REGEX = re.compile(r'^(\d+)\.wem$')


def wem_filename(index):
    return '%03d.wem' % (index + 1)


def unpack(bnk_path, output):
    os.makedirs(output, exist_ok=True)

    total = 0
    with SoundBank.open(bnk_path) as bnk:
        print(bnk)

        for idx, wem in enumerate(bnk.wems):
            filename = os.path.join(output, wem_filename(idx))
            logger.debug(f'writing {wem!r} into \'{filename}\'')
            with open(filename, 'wb') as f:
                total += wem.copy_to(f)

    print('Total bytes written: ', total)

    return total


def find_replacements(target):
    '''Return a ReplacementWem for each file named like a wem in target.'''
    replacements = []

    for filename in sorted(os.listdir(target)):
        match = WEM_FILENAME_REGEX.match(filename)
        if not match:
            continue

        index = int(match.group(1)) - 1
        if index < 0:
            logger.warning(f'ignoring \'{filename}\': wems are numbered from 1')
            continue

        path = os.path.join(target, filename)
        replacements.append(ReplacementWem(path, index, os.path.getsize(path)))

    return replacements


def repack(bnk_path, target, output):
    with SoundBank.open(bnk_path) as bnk:
        print(bnk)

        replacements = find_replacements(target)
        logger.info(f'found {len(replacements)} wems to replace in \'{target}\'')
        bnk.replace_wems(*replacements)

        written = bnk.save(output)

    print(f'Wrote {written} bytes of the SoundBank file')

    return written


def get_parser():
    parser = argparse.ArgumentParser(description='unpack and repack Wwise SoundBank files')
    parser.add_argument('-u', '--unpack', action='store_true', help='unpack a .bnk into separate .wem files')
    parser.add_argument('-r', '--repack', action='store_true', help='repack a set of .wem files into a .bnk file')
    parser.add_argument(
        '-b', '--bnkpath', default='',
        help='the path to the source .bnk. When unpack is used, this is the bnk file to unpack. '
             'When repack is used, this is the template bnk used; wem files will be replaced '
             'using this bnk as a source.')
    parser.add_argument(
        '-o', '--output', default='',
        help='the directory to output .wem files for unpacking or the path '
             'of the combined .bnk file for repacking.')
    parser.add_argument('-t', '--target', default='', help='the directory to find .wem files in for replacing.')

    return parser


def verify_args(parser, args):
    error = None
    if not (args.unpack or args.repack):
        error = 'Either unpack or repack should be specified'
    elif args.unpack and args.repack:
        error = 'Both unpack and repack cannot be specified'
    elif not args.bnkpath:
        error = 'bnkpath cannot be empty'
    elif not args.output:
        error = 'output cannot be empty'
    elif args.repack and not args.target:
        error = 'target cannot be empty'
    elif args.repack and os.path.abspath(args.output) == os.path.abspath(args.bnkpath):
        # the wems are read from bnkpath while writing
        error = 'output cannot be the same file as bnkpath'

    if error:
        parser.error(error)


def main(argv=None):
    parser = get_parser()
    args = parser.parse_args(argv)
    verify_args(parser, args)

    try:
        if args.unpack:
            unpack(args.bnkpath, args.output)
        else:
            repack(args.bnkpath, args.target, args.output)
    except (BnkStructException, OSError) as e:
        sys.exit(f'{args.bnkpath}: {e}')


if __name__ == '__main__':
    main()
