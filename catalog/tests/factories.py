from decimal import Decimal

import factory
from catalog.models import Product
from factory import Faker
from factory.django import DjangoModelFactory


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    name = Faker("sentence", nb_words=3)
    description = Faker("paragraph")
    price = Decimal("20.00")
    on_sale = False
    sale_price = None
    stock = 10
    seller = factory.SubFactory("users.tests.factories.SellerFactory")
    main_image = Faker("image_url")
    is_active = True
