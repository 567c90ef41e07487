"""initial library desk schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261017_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=80), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='staff'),
        sa.Column('full_name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=160), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=40), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_branches_id', 'branches', ['id'])
    op.create_index('ix_branches_name', 'branches', ['name'])

    op.create_table(
        'schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('time', sa.String(length=40), nullable=False),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_schedules_id', 'schedules', ['id'])
    op.create_index('ix_schedules_title', 'schedules', ['title'])
    op.create_index('ix_schedules_created_at', 'schedules', ['created_at'])

    op.create_table(
        'seats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('seat_number', sa.String(length=40), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('branch_id', 'seat_number', name='uq_seats_branch_seat_number'),
    )
    op.create_index('ix_seats_id', 'seats', ['id'])
    op.create_index('ix_seats_seat_number', 'seats', ['seat_number'])
    op.create_index('ix_seats_branch_id', 'seats', ['branch_id'])

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=160), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('registration_number', sa.String(length=40), nullable=True),
        sa.Column('father_name', sa.String(length=120), nullable=True),
        sa.Column('aadhar_number', sa.String(length=20), nullable=True),
        sa.Column('profile_image_url', sa.String(length=500), nullable=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=False),
        sa.Column('membership_start', sa.Date(), nullable=False),
        sa.Column('membership_end', sa.Date(), nullable=False),
        sa.Column('total_fee', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('amount_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('due_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('security_money', sa.Float(), nullable=False, server_default='0'),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_students_id', 'students', ['id'])
    op.create_index('ix_students_name', 'students', ['name'])
    op.create_index('ix_students_phone', 'students', ['phone'])
    op.create_index('ix_students_registration_number', 'students', ['registration_number'], unique=True)
    op.create_index('ix_students_branch_id', 'students', ['branch_id'])
    op.create_index('ix_students_membership_end', 'students', ['membership_end'])
    op.create_index('ix_students_is_active', 'students', ['is_active'])
    op.create_index('ix_students_created_at', 'students', ['created_at'])
    op.create_index('ix_students_branch_membership_end', 'students', ['branch_id', 'membership_end'])

    op.create_table(
        'seat_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('seat_id', sa.Integer(), sa.ForeignKey('seats.id'), nullable=True),
        sa.Column('shift_id', sa.Integer(), sa.ForeignKey('schedules.id'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False),
        sa.UniqueConstraint('seat_id', 'shift_id', name='uq_seat_assignments_seat_shift'),
    )
    op.create_index('ix_seat_assignments_id', 'seat_assignments', ['id'])
    op.create_index('ix_seat_assignments_seat_id', 'seat_assignments', ['seat_id'])
    op.create_index('ix_seat_assignments_shift_id', 'seat_assignments', ['shift_id'])
    op.create_index('ix_seat_assignments_student_id', 'seat_assignments', ['student_id'])
    op.create_index('ix_seat_assignments_student_shift', 'seat_assignments', ['student_id', 'shift_id'])

    op.create_table(
        'student_membership_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=160), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('registration_number', sa.String(length=40), nullable=True),
        sa.Column('father_name', sa.String(length=120), nullable=True),
        sa.Column('aadhar_number', sa.String(length=20), nullable=True),
        sa.Column('membership_start', sa.Date(), nullable=False),
        sa.Column('membership_end', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('total_fee', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('amount_paid', sa.Float(), nullable=False, server_default='0'),
        sa.Column('due_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('original_due', sa.Float(), nullable=False, server_default='0'),
        sa.Column('security_money', sa.Float(), nullable=False, server_default='0'),
        sa.Column('remark', sa.Text(), nullable=False, server_default=''),
        sa.Column('seat_id', sa.Integer(), sa.ForeignKey('seats.id', ondelete='SET NULL'), nullable=True),
        sa.Column('shift_id', sa.Integer(), sa.ForeignKey('schedules.id', ondelete='SET NULL'), nullable=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('changed_at', sa.DateTime(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
    )
    op.create_index('ix_student_membership_history_id', 'student_membership_history', ['id'])
    op.create_index('ix_student_membership_history_student_id', 'student_membership_history', ['student_id'])
    op.create_index('ix_student_membership_history_branch_id', 'student_membership_history', ['branch_id'])
    op.create_index('ix_student_membership_history_changed_at', 'student_membership_history', ['changed_at'])
    op.create_index('ix_membership_history_branch_changed', 'student_membership_history', ['branch_id', 'changed_at'])

    op.create_table(
        'previous_month_due_payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'history_id',
            sa.Integer(),
            sa.ForeignKey('student_membership_history.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='SET NULL'), nullable=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('method', sa.String(length=10), nullable=False),
        sa.Column('paid_at', sa.DateTime(), nullable=False),
        sa.Column('month_tag', sa.String(length=7), nullable=False),
        sa.Column('original_month', sa.String(length=7), nullable=False),
    )
    op.create_index('ix_previous_month_due_payments_id', 'previous_month_due_payments', ['id'])
    op.create_index('ix_previous_month_due_payments_history_id', 'previous_month_due_payments', ['history_id'])
    op.create_index('ix_previous_due_month_tag', 'previous_month_due_payments', ['month_tag', 'branch_id'])
    op.create_index('ix_previous_due_original_month', 'previous_month_due_payments', ['original_month', 'branch_id'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=160), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online', sa.Float(), nullable=False, server_default='0'),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
    )
    op.create_index('ix_expenses_id', 'expenses', ['id'])
    op.create_index('ix_expenses_date', 'expenses', ['date'])
    op.create_index('ix_expenses_branch_date', 'expenses', ['branch_id', 'date'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('cash_receipt', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online_receipt', sa.Float(), nullable=False, server_default='0'),
        sa.Column('cash_expense', sa.Float(), nullable=False, server_default='0'),
        sa.Column('online_expense', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_transactions_id', 'transactions', ['id'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])

    op.create_table(
        'advance_payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id'), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('payment_method', sa.String(length=10), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('used_amount', sa.Float(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_advance_payments_id', 'advance_payments', ['id'])
    op.create_index('ix_advance_payments_student_id', 'advance_payments', ['student_id'])
    op.create_index('ix_advance_payments_branch_id', 'advance_payments', ['branch_id'])
    op.create_index('ix_advance_payments_payment_date', 'advance_payments', ['payment_date'])
    op.create_index('ix_advance_payments_status', 'advance_payments', ['status'])
    op.create_index('ix_advance_payments_student_status', 'advance_payments', ['student_id', 'status'])

    op.create_table(
        'advance_payment_usage',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('advance_payment_id', sa.Integer(), sa.ForeignKey('advance_payments.id'), nullable=False),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column(
            'membership_history_id',
            sa.Integer(),
            sa.ForeignKey('student_membership_history.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('amount_used', sa.Float(), nullable=False),
        sa.Column('usage_type', sa.String(length=30), nullable=False, server_default='renewal'),
        sa.Column('usage_date', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_index('ix_advance_payment_usage_id', 'advance_payment_usage', ['id'])
    op.create_index('ix_advance_payment_usage_advance_payment_id', 'advance_payment_usage', ['advance_payment_id'])
    op.create_index('ix_advance_payment_usage_student_id', 'advance_payment_usage', ['student_id'])

    op.create_table(
        'settings',
        sa.Column('key', sa.String(length=80), primary_key=True),
        sa.Column('value', sa.Text(), nullable=False, server_default=''),
    )


def downgrade() -> None:
    op.drop_table('settings')
    op.drop_table('advance_payment_usage')
    op.drop_table('advance_payments')
    op.drop_table('transactions')
    op.drop_table('expenses')
    op.drop_table('previous_month_due_payments')
    op.drop_table('student_membership_history')
    op.drop_table('seat_assignments')
    op.drop_table('students')
    op.drop_table('seats')
    op.drop_table('schedules')
    op.drop_table('branches')
    op.drop_table('users')
