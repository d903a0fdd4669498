"""
# bnkstruct: Wwise SoundBank containers for humans.

A SoundBank is described declaratively: a Chunk is a sequence of fields,
each one knowing how to read itself from a stream and how to write itself
back. Two basic operations are defined for the format and its sub components:

 1. unpack(): read the binary data and build a high-level representation
    of that. The offset is the actual position of the stream and the chunk
    itself knows how many bytes it needs to read. Big blobs of data are not
    read at all: a View remembers where they are.

 2. pack(): encode the high-level representation into binary data, copying
    the views from their stream only at this time.

The only mutation supported on a SoundBank is the replacement of a wem
with one that is not larger: see bnkstruct.wwise.
"""
