# products/tests/test_directory.py

import uuid

from django.core.exceptions import ValidationError
from django.test import TestCase

from products.models import Product
from products.services import directory


class ProductDirectoryTests(TestCase):
    """
    Directory lookups used by the inventory engine.

    GUARANTEES:
    - Unknown and malformed ids never "exist"
    - Inactive products exist but are not active
    - require_active_product rejects both with ValidationError
    """

    def setUp(self):
        self.product = Product.objects.create(name="Amoxicillin 250mg", sku="AMX-250")
        self.inactive = Product.objects.create(
            name="Discontinued Syrup",
            sku="DSC-001",
            is_active=False,
        )

    def test_exists_for_known_product(self):
        self.assertTrue(directory.exists(self.product.id))
        self.assertTrue(directory.exists(str(self.product.id)))

    def test_unknown_and_malformed_ids_do_not_exist(self):
        self.assertFalse(directory.exists(uuid.uuid4()))
        self.assertFalse(directory.exists("not-a-uuid"))
        self.assertFalse(directory.exists(None))

    def test_is_active(self):
        self.assertTrue(directory.is_active(self.product.id))
        self.assertFalse(directory.is_active(self.inactive.id))
        self.assertTrue(directory.exists(self.inactive.id))

    def test_require_active_product_returns_product(self):
        self.assertEqual(directory.require_active_product(self.product.id), self.product)

    def test_require_active_product_rejects_inactive(self):
        with self.assertRaises(ValidationError):
            directory.require_active_product(self.inactive.id)

    def test_require_active_product_rejects_unknown(self):
        with self.assertRaises(ValidationError):
            directory.require_active_product(uuid.uuid4())
