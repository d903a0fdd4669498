import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="bnkstruct",
    version="0.0.1",
    author="Gianluca Pacchiella",
    author_email="gp@ktln2.org",
    description="Wwise SoundBank files for humans",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests"]),
    scripts=[
        "scripts/bnkutil.py",
        "scripts/bnkinfo.py",
    ],
    install_requires=[],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.7",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GPLv2 License",
        "Operating System :: OS Independent",
    ],
)
