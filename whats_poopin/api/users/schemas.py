# whats_poopin/api/users/schemas.py
from marshmallow import Schema, fields


class ProfileResponseSchema(Schema):
    """동기화된 프로필 응답 스키마."""
    external_id = fields.Str(data_key="externalId")
    internal_user_id = fields.Str(data_key="internalUserId")
    email = fields.Str()
    first_name = fields.Str(data_key="firstName")
    last_name = fields.Str(data_key="lastName")
    image_url = fields.Str(data_key="imageUrl")
    created_at = fields.Int(data_key="createdAt")
    updated_at = fields.Int(data_key="updatedAt")
