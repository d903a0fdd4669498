import struct

import pytest


class BankBuilder:
    '''Helpers to write SoundBank sections byte by byte.'''

    @staticmethod
    def section(identifier, payload):
        return identifier + struct.pack('<I', len(payload)) + payload

    @classmethod
    def bkhd(cls, version=0x8c, bank_id=0xdeadbeef, extra=b''):
        return cls.section(b'BKHD', struct.pack('<II', version, bank_id) + extra)

    @classmethod
    def didx(cls, *entries):
        '''Each entry is a tuple (wem_id, offset, length).'''
        return cls.section(b'DIDX', b''.join(struct.pack('<III', *_) for _ in entries))

    @classmethod
    def data(cls, payload):
        return cls.section(b'DATA', payload)


@pytest.fixture
def builder():
    return BankBuilder


@pytest.fixture
def wems_payload():
    '''Three wems: the first and the last one are followed by padding.'''
    return (
        b'\x11' * 5 + b'\x00' * 3 +
        b'\x22' * 8 +
        b'\x33' * 6 + b'\x00' * 2
    )


@pytest.fixture
def bank_data(builder, wems_payload):
    '''A SoundBank with the sections in the canonical order.'''
    return (
        builder.bkhd(extra=b'\x01\x02\x03\x04') +
        builder.didx((100, 0, 5), (200, 8, 8), (300, 16, 6)) +
        builder.data(wems_payload) +
        builder.section(b'HIRC', b'hierarchy') +
        builder.section(b'STID', b'strings')
    )


@pytest.fixture
def bank_path(tmp_path, bank_data):
    path = tmp_path / 'test.bnk'
    path.write_bytes(bank_data)

    return path
