"""Navigator KMS Meta information.
   Navigator KMS manages envelope-encrypted data keys for persisted records.
"""
__title__ = 'navigator_kms'
__description__ = (
   'Navigator KMS manages envelope-encrypted data keys '
   'for persisted records.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-kms'
