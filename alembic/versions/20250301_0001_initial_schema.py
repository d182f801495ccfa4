"""Initial EstateHub back-office schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20250301_0001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("timezone('utc', now())"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_projects"),
        sa.UniqueConstraint("slug", name="uq_projects_slug"),
    )

    op.create_table(
        "buildings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="fk_buildings_project_id_projects",
            ondelete="cascade",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_buildings"),
    )
    op.create_index("ix_buildings_project", "buildings", ["project_id"], unique=False)

    op.create_table(
        "units",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("building_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("number", sa.String(length=64), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=True),
        sa.Column("floor", sa.Integer(), server_default="0", nullable=False),
        sa.Column("status", sa.String(length=16), server_default="AVAILABLE", nullable=False),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("discount_price", sa.Float(), nullable=True),
        sa.Column("area", sa.Float(), nullable=True),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("window_view", sa.String(length=255), nullable=True),
        _created_at(),
        _created_at("updated_at"),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="fk_units_project_id_projects",
            ondelete="cascade",
        ),
        sa.ForeignKeyConstraint(
            ["building_id"],
            ["buildings.id"],
            name="fk_units_building_id_buildings",
            ondelete="cascade",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_units"),
        sa.UniqueConstraint(
            "project_id", "building_id", "number", name="uq_units_natural_key"
        ),
    )
    op.create_index("ix_units_project_status", "units", ["project_id", "status"], unique=False)

    op.create_table(
        "unit_field_mappings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("mappings", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("is_default", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_approved", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="fk_unit_field_mappings_project_id_projects",
            ondelete="cascade",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_unit_field_mappings"),
    )
    op.create_index(
        "ix_unit_field_mappings_project", "unit_field_mappings", ["project_id"], unique=False
    )

    op.create_table(
        "unit_imports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at("import_date"),
        sa.Column("imported_by", sa.String(length=120), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("price_update_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_units", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_units", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_units", sa.Integer(), server_default="0", nullable=False),
        sa.Column("skipped_units", sa.Integer(), server_default="0", nullable=False),
        sa.Column("field_mapping_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("raw_data", sa.JSON(), nullable=False),
        sa.Column("processed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["projects.id"],
            name="fk_unit_imports_project_id_projects",
            ondelete="cascade",
        ),
        sa.ForeignKeyConstraint(
            ["field_mapping_id"],
            ["unit_field_mappings.id"],
            name="fk_unit_imports_field_mapping_id_unit_field_mappings",
            ondelete="set null",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_unit_imports"),
    )
    op.create_index(
        "ix_unit_imports_project_processed",
        "unit_imports",
        ["project_id", "processed"],
        unique=False,
    )

    op.create_table(
        "unit_versions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("import_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at("version_date"),
        sa.Column("number", sa.String(length=64), nullable=False),
        sa.Column("floor", sa.Integer(), server_default="0", nullable=False),
        sa.Column("building_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("status", sa.String(length=16), server_default="AVAILABLE", nullable=False),
        sa.Column("area", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("window_view", sa.String(length=255), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(
            ["unit_id"],
            ["units.id"],
            name="fk_unit_versions_unit_id_units",
            ondelete="cascade",
        ),
        sa.ForeignKeyConstraint(
            ["import_id"],
            ["unit_imports.id"],
            name="fk_unit_versions_import_id_unit_imports",
            ondelete="cascade",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_unit_versions"),
    )
    op.create_index(
        "ix_unit_versions_unit_date",
        "unit_versions",
        ["unit_id", "version_date"],
        unique=False,
    )

    op.create_table(
        "missing_translations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("locale", sa.String(length=16), nullable=False),
        sa.Column("key", sa.String(length=512), nullable=False),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("occurrences", sa.Integer(), server_default="1", nullable=False),
        _created_at("first_seen_at"),
        _created_at("last_seen_at"),
        sa.PrimaryKeyConstraint("id", name="pk_missing_translations"),
        sa.UniqueConstraint("locale", "key", name="uq_missing_translations_locale_key"),
    )


def downgrade() -> None:
    op.drop_table("missing_translations")
    op.drop_index("ix_unit_versions_unit_date", table_name="unit_versions")
    op.drop_table("unit_versions")
    op.drop_index("ix_unit_imports_project_processed", table_name="unit_imports")
    op.drop_table("unit_imports")
    op.drop_index("ix_unit_field_mappings_project", table_name="unit_field_mappings")
    op.drop_table("unit_field_mappings")
    op.drop_index("ix_units_project_status", table_name="units")
    op.drop_table("units")
    op.drop_index("ix_buildings_project", table_name="buildings")
    op.drop_table("buildings")
    op.drop_table("projects")
