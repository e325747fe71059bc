from setuptools import setup, find_packages

setup(
    name='homeledger',
    version='0.0.1dev',

    description='Aggregate a household ledger into balances, income, gains and tax bases',

    license='MIT',

    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'Intended Audience :: Financial and Insurance Industry',
        'Topic :: Software Development :: Libraries :: Python Modules',
        'Topic :: Utilities',
        'Topic :: Office/Business',
        'Topic :: Office/Business :: Financial',
        'Topic :: Office/Business :: Financial :: Accounting',
        'Topic :: Office/Business :: Financial :: Investment',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Natural Language :: English',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.7',
        'Programming Language :: Python :: 3.8',
    ],

    keywords=['tax', 'investment', 'ledger', 'accounting', 'household'],

    packages=find_packages(exclude=['tests']),

    install_requires=[
        'ofxtools >= 0.8.20',
        'sqlalchemy >= 1.4.0',
        'tablib',
    ],

    entry_points={
        'console_scripts': [
            'homeledger=homeledger.script:main',
        ],
    },
)
