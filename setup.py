from setuptools import setup, find_packages

setup(
    name="critical-css",
    version="1.0.0",
    packages=find_packages(),
    install_requires=[
        'beautifulsoup4>=4.10',
        'soupsieve',
        'cssutils',
        'aiofiles',
        'orjson',
        'chardet',
        'colorama',
        'tqdm',
        'typing-extensions'
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    entry_points={
        'console_scripts': [
            'critical-css=critical_css.cli:main',
        ],
    },
    python_requires='>=3.7',
    description="Inline the critical CSS of HTML documents and defer or prune the rest",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
