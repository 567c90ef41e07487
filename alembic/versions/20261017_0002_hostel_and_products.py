"""hostel desk and product tables

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 00:02:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261017_0002'
down_revision = '20261017_0001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'hostel_branches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_hostel_branches_id', 'hostel_branches', ['id'])
    op.create_index('ix_hostel_branches_name', 'hostel_branches', ['name'])

    op.create_table(
        'hostel_students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('hostel_branches.id'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('father_name', sa.String(length=120), nullable=True),
        sa.Column('mother_name', sa.String(length=120), nullable=True),
        sa.Column('aadhar_number', sa.String(length=12), nullable=True),
        sa.Column('phone_number', sa.String(length=10), nullable=True),
        sa.Column('profile_image_url', sa.String(length=500), nullable=True),
        sa.Column('aadhar_image_url', sa.String(length=500), nullable=True),
        sa.Column('religion', sa.String(length=40), nullable=False),
        sa.Column('food_preference', sa.String(length=40), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=False),
        sa.Column('security_money', sa.Float(), nullable=False, server_default='0'),
        sa.Column('security_money_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('security_money_online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('registration_number', sa.String(length=40), nullable=True),
        sa.Column('room_number', sa.String(length=40), nullable=True),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_hostel_students_id', 'hostel_students', ['id'])
    op.create_index('ix_hostel_students_branch_id', 'hostel_students', ['branch_id'])
    op.create_index('ix_hostel_students_name', 'hostel_students', ['name'])

    op.create_table(
        'hostel_student_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('hostel_students.id'), nullable=False),
        sa.Column('stay_start_date', sa.Date(), nullable=False),
        sa.Column('stay_end_date', sa.Date(), nullable=False),
        sa.Column('total_fee', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('due_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('security_money_cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('security_money_online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('room_number', sa.String(length=40), nullable=True),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_hostel_student_history_id', 'hostel_student_history', ['id'])
    op.create_index('ix_hostel_student_history_student_id', 'hostel_student_history', ['student_id'])
    op.create_index('ix_hostel_student_history_created_at', 'hostel_student_history', ['created_at'])
    op.create_index('ix_hostel_history_student_end', 'hostel_student_history', ['student_id', 'stay_end_date'])

    op.create_table(
        'hostel_expenses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=160), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('hostel_branches.id'), nullable=True),
    )
    op.create_index('ix_hostel_expenses_id', 'hostel_expenses', ['id'])
    op.create_index('ix_hostel_expenses_date', 'hostel_expenses', ['date'])
    op.create_index('ix_hostel_expenses_branch_date', 'hostel_expenses', ['branch_id', 'date'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_name', 'products', ['name'])


def downgrade() -> None:
    op.drop_table('products')
    op.drop_table('hostel_expenses')
    op.drop_table('hostel_student_history')
    op.drop_table('hostel_students')
    op.drop_table('hostel_branches')
