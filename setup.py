from setuptools import setup, find_namespace_packages

setup(
    name='atmfjstc-part-met',
    version='1.0.0',

    author_email='atmfjstc@protonmail.com',

    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src', include=['atmfjstc.*']),

    install_requires=[
        'atmfjstc-binary-utils>=1.2, <2',
        'atmfjstc-cli-utils>=1.8, <2',
        'colorama>=0.4.6, <2',
    ],

    entry_points={
        'console_scripts': [
            'readmet=atmfjstc.lib.part_met.cli:main',
        ],
    },

    zip_safe=True,

    description="Decoder for the .part.met partial download metadata files of eDonkey2000/Overnet/eMule",

    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Communications :: File Sharing",
        "Typing :: Typed",
    ],
    python_requires='>=3.7',
)
