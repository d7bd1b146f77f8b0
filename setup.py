from setuptools import setup, find_packages



def get_requires():
    reqs = []
    for line in open("requirements.txt", "r").readlines():
        line = line.strip()
        if len(line) > 0 and not line.startswith("#"):
            reqs.append(line)
    return reqs

setup(
    name='uvitdrp',
    version="1.0",
    description='(AstroSat) Ultra-Violet Imaging Telescope Level-2 Data Reduction Pipeline',
    author='UVIT DRP developers',
    license='BSD',
    packages=find_packages(include=["uvitdrp", "uvitdrp.*"]),
    classifiers=[
        # Indicate who your project is intended for
        'Intended Audience :: Science/Research',
        'Topic :: Scientific/Engineering :: Astronomy',

        'Programming Language :: Python :: 3',
        ],
    keywords='AstroSat UVIT Ultraviolet Astronomy',
    install_requires=get_requires(),
    entry_points={
        "console_scripts": ["uvitdrp-reduce=uvitdrp.ops:main"],
    },
    )
