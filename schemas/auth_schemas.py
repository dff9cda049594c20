from pydantic import BaseModel, EmailStr, field_validator
import phonenumbers
import re


def normalize_phone(value: str, region: str | None = None) -> str:
    """
    Validates a phone number with Google's phonenumbers library and returns
    it in E.164 form. Without a region the number must carry its country code.
    """
    try:
        parsed = phonenumbers.parse(value, region)
    except phonenumbers.NumberParseException:
        raise ValueError('Phone number must include country code (e.g.: +62812xxxxxxx)')

    if not phonenumbers.is_valid_number(parsed):
        raise ValueError('Invalid phone number')

    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


class Token(BaseModel):
    access_token: str
    token_type: str


class CreateUserRequest(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    password: str
    phone_number: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        """
        Password must be at least 8 characters and contain:
        - At least one letter
        - At least one digit
        """
        if len(value) < 8:
            raise ValueError('Password must be at least 8 characters')

        if not re.search(r'[A-Za-z]', value):
            raise ValueError('Password must contain at least one letter')

        if not re.search(r'\d', value):
            raise ValueError('Password must contain at least one digit')

        return value

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, value):
        return normalize_phone(value)
