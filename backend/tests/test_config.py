from temple_donations.config import Settings, validate_payment_config


def test_complete_config_is_valid(tmp_path):
    settings = Settings(
        _env_file=None,
        PAYU_MERCHANT_KEY="K",
        PAYU_MERCHANT_SALT="S",
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_PHONE_NUMBER="+14155238886",
        LOG_DIR=str(tmp_path),
    )

    is_valid, errors = validate_payment_config(settings)
    assert is_valid, errors


def test_missing_credentials_are_reported(tmp_path):
    settings = Settings(_env_file=None, UPI_MERCHANT_ID="not-a-vpa", LOG_DIR=str(tmp_path))

    is_valid, errors = validate_payment_config(settings)

    assert not is_valid
    joined = " ".join(errors)
    assert "PAYU_MERCHANT_KEY" in joined
    assert "PAYU_MERCHANT_SALT" in joined
    assert "TWILIO_ACCOUNT_SID" in joined
    assert "UPI_MERCHANT_ID" in joined


def test_whatsapp_disabled_skips_twilio_checks(settings):
    settings.WHATSAPP_ENABLED = False
    assert validate_payment_config(settings) == (True, [])


def test_salt_never_appears_in_repr(settings):
    assert settings.merchant_salt == "S"
    assert str(settings.PAYU_MERCHANT_SALT) == "**********"
    assert "'S'" not in repr(settings)


def test_callback_urls(settings):
    settings.PUBLIC_BASE_URL = "https://api.temple.test/"
    assert settings.payu_success_url == "https://api.temple.test/api/payments/success"
    assert settings.payu_failure_url == "https://api.temple.test/api/payments/failure"
