"""Install the key-value session store."""

from setuptools import setup, find_packages

setup(
    name='kvsession',
    version='0.1.0',
    description='Server-side web sessions in a key-value store',
    packages=find_packages(exclude=['*test*']),
    scripts=['bin/generate-session-keys'],
    python_requires='>=3.8',
    install_requires=[
        "click",
        "cryptography",
        "flask>=2.3",
        "pyjwt>=2.4",
        "python-json-logger",
        "pytz",
        "redis>=4.1",
        "werkzeug>=2.3",
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=False
)
