"""Studio Manager Vault Meta information.
   Studio Manager Vault protects the sensitive fields of studio records
   (credentials, PINs, tax identifiers) with a master-password derived key.
"""
__title__ = 'studio_manager'
__description__ = (
   'Studio Manager Vault protects sensitive record fields '
   'with a master-password derived key.'
)
__version__ = '1.2.0'
__copyright__ = 'Copyright (c) 2024 Studio Manager Pro'
__author__ = 'Studio Manager Pro'
__author_email__ = 'dev@studiomanager.pro'
__license__ = 'Apache-2.0'
