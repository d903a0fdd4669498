import io
import logging

import pytest

from bnkstruct.enum import Compliant
from bnkstruct.exceptions import (
    DataBeforeIndex,
    DuplicateWemId,
    IndexOutOfRange,
    MagicException,
    MalformedIndexLength,
    MissingDataChunk,
    OverlappingWems,
    SpanMismatch,
    TruncatedChunk,
    TruncatedHeader,
    UnsupportedGrowth,
)
from bnkstruct.streams import Stream, View, ZeroView
from bnkstruct.wwise import (
    SoundBank,
    ReplacementWem,
    BankHeaderSection,
    DataIndexSection,
    DataSection,
    UnknownSection,
)


def get_section(data, identifier):
    '''Return header and payload of the first section with the given identifier.'''
    offset = 0
    while offset < len(data):
        length = int.from_bytes(data[offset + 4:offset + 8], 'little')
        if data[offset:offset + 4] == identifier:
            return data[offset:offset + 8 + length]
        offset += 8 + length

    raise KeyError(identifier)


def test_unpack(bank_data):
    bnk = SoundBank(bank_data)

    assert bnk.bank_header.descriptor.version.value == 0x8c
    assert bnk.bank_header.descriptor.bank_id.value == 0xdeadbeef
    assert bnk.bank_header.remaining.raw == b'\x01\x02\x03\x04'

    assert bnk.index.wem_ids == [100, 200, 300]
    assert bnk.index.wem_count == 3
    assert sorted(bnk.index.descriptor_map) == [100, 200, 300]

    assert bnk.wem_count == 3
    assert [_.wem_id for _ in bnk.wems] == [100, 200, 300]
    assert [_.offset for _ in bnk.wems] == [0, 8, 16]
    assert [_.read() for _ in bnk.wems] == [b'\x11' * 5, b'\x22' * 8, b'\x33' * 6]
    assert [_.padding_length for _ in bnk.wems] == [3, 0, 2]

    assert [_.identifier for _ in bnk.others] == [b'HIRC', b'STID']
    assert all(isinstance(_, UnknownSection) for _ in bnk.others)
    assert bnk.others[0].data.raw == b'hierarchy'


def test_round_trip(bank_data):
    bnk = SoundBank(bank_data)

    assert bnk.pack() == bank_data

    sink = io.BytesIO()
    assert bnk.pack(sink) == len(bank_data)
    assert sink.getvalue() == bank_data


def test_unknown_sections_are_packed_at_the_end(builder, wems_payload):
    bkhd = builder.bkhd()
    didx = builder.didx((100, 0, 5), (200, 8, 8), (300, 16, 6))
    hirc = builder.section(b'HIRC', b'hierarchy')
    data = builder.data(wems_payload)
    stid = builder.section(b'STID', b'strings')

    bnk = SoundBank(hirc + bkhd + didx + stid + data)

    packed = bnk.pack()

    assert packed == bkhd + didx + data + hirc + stid
    for section in (bkhd, didx, data, hirc, stid):
        assert get_section(packed, section[:4]) == section


def test_summary(bank_data):
    bnk = SoundBank(bank_data)

    assert str(bnk) == (
        'BKHD: len(12) version(140) id(3735928559)\n'
        'DIDX: len(36) wem_count(3)\n'
        'DIDX WEM total size: 19\n'
        'DATA: len(24) wems(3)\n'
        'HIRC: len(9)\n'
        'STID: len(7)\n'
    )


def test_open_and_save(bank_path, bank_data, tmp_path):
    output = tmp_path / 'output.bnk'

    with SoundBank.open(str(bank_path)) as bnk:
        assert bnk.save(str(output)) == len(bank_data)

    assert bnk.stream.obj.closed
    assert output.read_bytes() == bank_data


def test_replace_concrete_scenario(builder):
    bnk = SoundBank(
        builder.didx((1, 0, 4)) +
        builder.data(b'\xaa\xaa\xaa\xaa\x00\x00\x00\x00')
    )

    bnk.replace_wem(0, b'\xbb\xbb')

    descriptor = bnk.index.descriptor_map[1]
    assert (descriptor.wem_id.value, descriptor.data_offset.value, descriptor.length.value) == (1, 0, 2)

    packed = bnk.pack()
    assert get_section(packed, b'DIDX') == builder.didx((1, 0, 2))
    assert get_section(packed, b'DATA') == builder.data(b'\xbb\xbb\x00\x00\x00\x00\x00\x00')


def test_replace_keeps_offsets(bank_data, builder):
    bnk = SoundBank(bank_data)

    bnk.replace_wem(1, b'\x44' * 3)

    wem = bnk.wems[1]
    assert wem.length == 3
    assert wem.offset == 8
    assert wem.padding_length == 5
    assert isinstance(wem.padding, ZeroView)

    # the other wems don't move
    assert [_.offset for _ in bnk.wems] == [0, 8, 16]
    assert bnk.data.span == bnk.data.header.length.value == 24

    packed = bnk.pack()
    assert len(packed) == len(bank_data)
    assert get_section(packed, b'DIDX') == builder.didx((100, 0, 5), (200, 8, 3), (300, 16, 6))
    assert get_section(packed, b'DATA') == builder.data(
        b'\x11' * 5 + b'\x00' * 3 +
        b'\x44' * 3 + b'\x00' * 5 +
        b'\x33' * 6 + b'\x00' * 2
    )

    # the packed bank is a valid bank
    repacked = SoundBank(packed)
    assert [_.read() for _ in repacked.wems] == [b'\x11' * 5, b'\x44' * 3, b'\x33' * 6]


def test_replace_with_same_length(bank_data):
    bnk = SoundBank(bank_data)

    bnk.replace_wem(2, b'\x55' * 6)

    assert bnk.wems[2].padding_length == 2
    assert bnk.pack() == bank_data.replace(b'\x33' * 6, b'\x55' * 6)


def test_replace_with_explicit_length(bank_data):
    bnk = SoundBank(bank_data)

    # only the first two bytes are used
    bnk.replace_wem(0, b'\x66\x67\x68', length=2)

    assert bnk.wems[0].read() == b'\x66\x67'
    assert bnk.wems[0].padding_length == 6


def test_replace_from_file(bank_data, tmp_path):
    path = tmp_path / '001.wem'
    path.write_bytes(b'\x77' * 4)

    with SoundBank(bank_data) as bnk:
        bnk.replace_wem(0, str(path))
        assert bnk.wems[0].read() == b'\x77' * 4
        assert bnk.pack()[:8] == b'BKHD\x0c\x00\x00\x00'


def test_replace_growth_rejected(bank_data):
    bnk = SoundBank(bank_data)

    with pytest.raises(UnsupportedGrowth) as exc_info:
        bnk.replace_wem(0, b'\x99' * 6)

    assert exc_info.value.index == 0
    assert exc_info.value.length == 6
    assert exc_info.value.old_length == 5

    assert bnk.wems[0].length == 5
    assert bnk.pack() == bank_data


def test_replace_index_out_of_range(bank_data):
    bnk = SoundBank(bank_data)

    with pytest.raises(IndexOutOfRange):
        bnk.replace_wem(3, b'\x00')

    with pytest.raises(IndexOutOfRange):
        bnk.replace_wem(-1, b'\x00')

    assert bnk.pack() == bank_data


def test_replace_source_too_short(bank_data):
    bnk = SoundBank(bank_data)

    with pytest.raises(TruncatedChunk):
        bnk.replace_wem(0, b'\x99', length=4)

    assert bnk.pack() == bank_data


def test_replace_batch(bank_data):
    bnk = SoundBank(bank_data)

    bnk.replace_wems(
        ReplacementWem(b'\xa0', 0),
        ReplacementWem(b'\xa2\xa2', 2),
    )

    assert [_.length for _ in bnk.wems] == [1, 8, 2]
    assert [_.offset for _ in bnk.wems] == [0, 8, 16]
    assert [_.padding_length for _ in bnk.wems] == [7, 0, 6]
    assert len(bnk.pack()) == len(bank_data)


def test_replace_batch_is_atomic(bank_data):
    bnk = SoundBank(bank_data)

    with pytest.raises(UnsupportedGrowth):
        bnk.replace_wems(
            ReplacementWem(b'\xa0', 0),
            ReplacementWem(b'\xa1' * 9, 1),
        )

    # the first replacement was valid but it's not applied
    assert [_.length for _ in bnk.wems] == [5, 8, 6]
    assert bnk.pack() == bank_data


def test_replace_batch_same_wem_twice(bank_data):
    bnk = SoundBank(bank_data)

    # the second one is checked against the first one
    with pytest.raises(UnsupportedGrowth):
        bnk.replace_wems(
            ReplacementWem(b'\xa0', 0),
            ReplacementWem(b'\xa0' * 3, 0),
        )

    bnk.replace_wems(
        ReplacementWem(b'\xa0' * 3, 0),
        ReplacementWem(b'\xa1', 0),
    )

    assert bnk.wems[0].read() == b'\xa1'
    assert bnk.wems[0].padding_length == 7
    assert bnk.data.span == 24


def test_span_mismatch(bank_data):
    bnk = SoundBank(bank_data)

    bnk.wems[0].padding = ZeroView(100)

    with pytest.raises(SpanMismatch):
        bnk.pack()


def test_duplicate_wem_id(builder):
    data = (
        builder.bkhd() +
        builder.didx((5, 0, 2), (5, 2, 2)) +
        builder.data(b'\x00' * 4)
    )

    with pytest.raises(DuplicateWemId) as exc_info:
        SoundBank(data)

    assert exc_info.value.wem_id == 5
    assert exc_info.value.chain == ['DIDX', 'descriptors']


def test_missing_data_chunk(builder):
    with pytest.raises(MissingDataChunk):
        SoundBank(builder.bkhd())


def test_data_before_index(builder):
    data = (
        builder.bkhd() +
        builder.data(b'\x00' * 4) +
        builder.didx((1, 0, 4))
    )

    with pytest.raises(DataBeforeIndex):
        SoundBank(data)


def test_truncated_header(bank_data):
    with pytest.raises(TruncatedHeader):
        SoundBank(bank_data + b'ABC')


def test_truncated_data(builder):
    data = builder.bkhd() + builder.didx((1, 0, 4)) + b'DATA\x64\x00\x00\x00' + b'\x00' * 4

    with pytest.raises(TruncatedChunk) as exc_info:
        SoundBank(data)

    assert exc_info.value.chain[0] == 'DATA'


def test_truncated_unknown_section(bank_data):
    with pytest.raises(TruncatedChunk):
        SoundBank(bank_data + b'HIRC\x32\x00\x00\x00abc')


def test_truncated_bank_header(builder):
    data = builder.section(b'BKHD', b'\x01\x00\x00\x00') + builder.didx() + builder.data(b'')

    with pytest.raises(TruncatedChunk):
        SoundBank(data)


def test_wem_outside_data(builder):
    data = builder.didx((1, 0, 4), (2, 2, 4)) + builder.data(b'\x00' * 8)

    # the first wem overlaps the second one
    with pytest.raises(OverlappingWems) as exc_info:
        SoundBank(data)

    assert exc_info.value.chain == ['DATA', 'wems', '0']

    with pytest.raises(TruncatedChunk):
        SoundBank(builder.didx((1, 4, 8)) + builder.data(b'\x00' * 8))


def test_data_before_first_wem_is_preserved(builder):
    data = builder.didx((1, 4, 2)) + builder.data(b'\xee' * 4 + b'\x01\x02' + b'\x00' * 2)

    bnk = SoundBank(data)

    assert bnk.wems[0].read() == b'\x01\x02'
    assert bnk.data.span == 8
    assert bnk.pack() == data


def test_empty_index(builder):
    data = builder.bkhd() + builder.didx() + builder.data(b'\x00' * 4)

    bnk = SoundBank(data)

    assert bnk.wem_count == 0
    assert bnk.pack() == data


def test_index_length_not_multiple(builder, caplog):
    didx = builder.section(b'DIDX', b'\x01\x00\x00\x00\x00\x00\x00\x00\x04\x00\x00\x00' + b'\xff' * 4)
    data = builder.bkhd() + didx + builder.data(b'\xaa' * 4)

    with caplog.at_level(logging.WARNING):
        bnk = SoundBank(data)

    assert 'not a multiple of 12' in caplog.text
    assert bnk.wem_count == 1
    assert bnk.wems[0].read() == b'\xaa' * 4
    # the bytes that don't make an entry are kept
    assert bnk.pack() == data

    with pytest.raises(MalformedIndexLength):
        SoundBank(data, compliant=Compliant.INDEX)


def test_section_with_wrong_identifier(builder):
    with pytest.raises(MagicException):
        BankHeaderSection(builder.didx((1, 0, 4)))

    with pytest.raises(MagicException):
        DataIndexSection(builder.bkhd())


def test_unsorted_index(builder):
    data = builder.didx((1, 4, 4), (2, 0, 4)) + builder.data(b'\x00' * 8)

    with pytest.raises(OverlappingWems) as exc_info:
        SoundBank(data)

    assert exc_info.value.chain == ['DATA', 'wems', '0']


def test_data_section_without_index(builder):
    with pytest.raises(DataBeforeIndex):
        DataSection(builder.data(b'\x00'))


def test_wem_replace_refuses_growth(builder):
    data = builder.didx((1, 0, 2)) + builder.data(b'\xaa\xaa\x00\x00')
    bnk = SoundBank(data)
    wem = bnk.wems[0]

    with pytest.raises(UnsupportedGrowth) as exc_info:
        wem.replace(View(Stream(b'\xbb' * 3), 0, 3))

    assert exc_info.value.index == 0
    assert exc_info.value.length == 3
    assert exc_info.value.old_length == 2

    assert wem.length == 2
    assert wem.padding_length == 2
    assert bnk.pack() == data

    wem.replace(View(Stream(b'\xbb'), 0, 1))

    assert bnk.pack() == builder.didx((1, 0, 1)) + builder.data(b'\xbb\x00\x00\x00')
