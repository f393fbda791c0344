"""initial schema: users, pets, match ledger, chats and messages

Revision ID: 7a3c51e2d904
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7a3c51e2d904"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

pet_type = sa.Enum("dog", "cat", name="pettype")
gender = sa.Enum("unknown", "male", "female", name="gender")
pet_size = sa.Enum("small", "medium", "large", "xlarge", name="petsize")
activity_level = sa.Enum("low", "moderate", "high", name="activitylevel")
match_decision = sa.Enum("undecided", "liked", "passed", name="matchdecision")


def upgrade() -> None:
    """Create every table."""
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("password_hash", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("google_id", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("address", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("city", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("push_token", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_user_email"),
        sa.UniqueConstraint("google_id", name="uq_user_google_id"),
        sa.CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_user_credentials",
        ),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=False)
    op.create_index("ix_user_location", "user", ["latitude", "longitude"], unique=False)

    op.create_table(
        "pet",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=30), nullable=False),
        sa.Column("type", pet_type, nullable=False),
        sa.Column("breed", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", gender, nullable=False),
        sa.Column("size", pet_size, nullable=True),
        sa.Column("vaccinated", sa.Boolean(), nullable=False),
        sa.Column("activity_level", activity_level, nullable=False),
        sa.Column("temperament", sa.JSON(), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column(
            "description", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True
        ),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["owner_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pet_owner_id", "pet", ["owner_id"], unique=False)
    op.create_index("ix_pet_type", "pet", ["type"], unique=False)

    op.create_table(
        "pet_dislike",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pet_id", sa.Integer(), nullable=False),
        sa.Column("disliked_pet_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["pet_id"], ["pet.id"]),
        sa.ForeignKeyConstraint(["disliked_pet_id"], ["pet.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pet_id", "disliked_pet_id", name="uq_pet_dislike"),
    )
    op.create_index("ix_pet_dislike_pet_id", "pet_dislike", ["pet_id"], unique=False)
    op.create_index(
        "ix_pet_dislike_disliked_pet_id",
        "pet_dislike",
        ["disliked_pet_id"],
        unique=False,
    )

    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("pet1_id", sa.Integer(), nullable=False),
        sa.Column("pet2_id", sa.Integer(), nullable=False),
        sa.Column(
            "pet1_decision", match_decision, server_default="undecided", nullable=False
        ),
        sa.Column(
            "pet2_decision", match_decision, server_default="undecided", nullable=False
        ),
        sa.Column("is_match", sa.Boolean(), nullable=False),
        sa.Column("matched_at", sa.DateTime(), nullable=True),
        sa.Column("last_interaction_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["pet1_id"], ["pet.id"]),
        sa.ForeignKeyConstraint(["pet2_id"], ["pet.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pet1_id", "pet2_id", name="uq_match_pet_pair"),
        sa.CheckConstraint("pet1_id < pet2_id", name="ck_match_canonical_order"),
    )
    op.create_index("ix_match_pet1_id", "match", ["pet1_id"], unique=False)
    op.create_index("ix_match_pet2_id", "match", ["pet2_id"], unique=False)
    op.create_index(
        "ix_match_pet1_is_match", "match", ["pet1_id", "is_match"], unique=False
    )
    op.create_index(
        "ix_match_pet2_is_match", "match", ["pet2_id", "is_match"], unique=False
    )

    op.create_table(
        "chat",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("user_low_id", sa.Integer(), nullable=False),
        sa.Column("user_high_id", sa.Integer(), nullable=False),
        sa.Column("last_message_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["match_id"], ["match.id"]),
        sa.ForeignKeyConstraint(["user_low_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["user_high_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("match_id", name="uq_chat_match"),
    )
    op.create_index("ix_chat_match_id", "chat", ["match_id"], unique=False)
    op.create_index("ix_chat_user_low_id", "chat", ["user_low_id"], unique=False)
    op.create_index("ix_chat_user_high_id", "chat", ["user_high_id"], unique=False)

    op.create_table(
        "message",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("chat_id", sa.Integer(), nullable=False),
        sa.Column("sender_user_id", sa.Integer(), nullable=False),
        sa.Column("content", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["chat.id"]),
        sa.ForeignKeyConstraint(["sender_user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_message_chat_id", "message", ["chat_id"], unique=False)
    op.create_index(
        "ix_message_sender_user_id", "message", ["sender_user_id"], unique=False
    )
    op.create_index("ix_message_created_at", "message", ["created_at"], unique=False)

    op.create_table(
        "message_read",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("message_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["message_id"], ["message.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("message_id", "user_id", name="uq_message_read_reader"),
    )
    op.create_index(
        "ix_message_read_message_id", "message_read", ["message_id"], unique=False
    )
    op.create_index(
        "ix_message_read_user_id", "message_read", ["user_id"], unique=False
    )


def downgrade() -> None:
    """Drop every table."""
    op.drop_index("ix_message_read_user_id", table_name="message_read")
    op.drop_index("ix_message_read_message_id", table_name="message_read")
    op.drop_table("message_read")
    op.drop_index("ix_message_created_at", table_name="message")
    op.drop_index("ix_message_sender_user_id", table_name="message")
    op.drop_index("ix_message_chat_id", table_name="message")
    op.drop_table("message")
    op.drop_index("ix_chat_user_high_id", table_name="chat")
    op.drop_index("ix_chat_user_low_id", table_name="chat")
    op.drop_index("ix_chat_match_id", table_name="chat")
    op.drop_table("chat")
    op.drop_index("ix_match_pet2_is_match", table_name="match")
    op.drop_index("ix_match_pet1_is_match", table_name="match")
    op.drop_index("ix_match_pet2_id", table_name="match")
    op.drop_index("ix_match_pet1_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_pet_dislike_disliked_pet_id", table_name="pet_dislike")
    op.drop_index("ix_pet_dislike_pet_id", table_name="pet_dislike")
    op.drop_table("pet_dislike")
    op.drop_index("ix_pet_type", table_name="pet")
    op.drop_index("ix_pet_owner_id", table_name="pet")
    op.drop_table("pet")
    op.drop_index("ix_user_location", table_name="user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
    for enum in (match_decision, activity_level, pet_size, gender, pet_type):
        enum.drop(op.get_bind(), checkfirst=True)
