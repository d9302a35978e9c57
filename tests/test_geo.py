from order_engine.services.geo import (
    MockAddressValidator,
    get_address_validator,
    haversine_km,
    reset_address_validator,
)


def test_haversine_marseille_to_aix():
    distance = haversine_km(43.2965, 5.3698, 43.5297, 5.4474)
    assert 25 < distance < 28


async def test_zip_in_range(validator):
    result = await validator.validate_zip_code_for_delivery("13002")

    assert result.valid
    assert result.error is None
    assert result.distance < 2


async def test_zip_out_of_range(validator):
    result = await validator.validate_zip_code_for_delivery("13100")

    assert not result.valid
    assert result.error == "Livraison non disponible au-delà de 10km"
    assert result.distance > 10


async def test_zip_format_and_unknown(validator):
    assert (await validator.validate_zip_code_for_delivery("1300")).error == validator.MSG_ZIP_FORMAT
    assert (await validator.validate_zip_code_for_delivery("75001")).error == validator.MSG_ZIP_NOT_FOUND


async def test_zip_read_from_address_text(validator):
    result = await validator.validate_address_for_delivery("3 rue Sainte, 13007 Marseille")

    assert result.valid
    assert result.formatted_address.endswith("13007 Marseille 7ème")


async def test_unlocatable_address(validator):
    result = await validator.validate_address_for_delivery("Place inconnue")

    assert not result.valid
    assert result.error == validator.MSG_ADDRESS_NOT_FOUND


async def test_radius_is_configurable():
    wide = MockAddressValidator(radius_km=30)
    assert (await wide.validate_zip_code_for_delivery("13100")).valid


def test_factory_selects_mock_in_development():
    reset_address_validator()
    validator = get_address_validator()

    assert isinstance(validator, MockAddressValidator)
    assert get_address_validator() is validator
    reset_address_validator()
    assert get_address_validator() is not validator
