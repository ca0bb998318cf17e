from setuptools import setup, find_packages
import re

# Read version from agencydesk/__init__.py
with open('agencydesk/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='agency-desk',
    version=version,
    packages=find_packages(include=['agencydesk', 'agencydesk.*']),
    install_requires=[
        'PyPDF2>=3.0.0,<4',
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich',
    ],
    extras_require={
        'mcp': [
            'mcp[cli]>=1.0.0,<2',
        ],
        'test': [
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'agency-desk=agencydesk.cli.__main__:main',
            'agency-desk-mcp=agencydesk.mcp.server:run_server',
        ],
    },
    author='Personal',
    description='Payroll, vehicle buy order and insurance tools for a small agency.',
    python_requires='>=3.10',
)
