import os

from setuptools import setup

readme_path = os.path.join(os.path.dirname(
    os.path.abspath(__file__)),
    'README.md',
)
long_description = open(readme_path).read()

setup(
    name='powermax-mqtt',
    version='0.1.0',
    packages=['powermax', 'powermax.cli'],
    description="Bridge between the Visonic PowerMax serial protocol and MQTT",
    long_description=long_description,
    long_description_content_type='text/markdown',
    zip_safe=False,
    python_requires='>=3.10',
    classifiers=[
        'Intended Audience :: Developers',
        'Programming Language :: Python',
        'License :: OSI Approved :: MIT License',
    ],
    install_requires=[
        'justbackoff',
        'pyserial',
        'pyserial-asyncio-fast',
        'paho-mqtt>=2.0',
        'click',
    ],
    extras_require={
        'test': ['pytest', 'pytest-asyncio'],
    },
    entry_points={
        'console_scripts': ['powermax-mqtt=powermax.cli.__main__:cli'],
    },
    setup_requires=[],
)
