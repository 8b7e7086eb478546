import click
from datetime import datetime
from cortexbuild.core.database import SessionLocal, Base, engine
from cortexbuild.services.plan_catalog import PlanCatalog
from cortexbuild.services.quota_service import METRICS, QuotaService, current_period
from cortexbuild.services.subscription_service import SubscriptionService
import cortexbuild.models  # noqa: F401
import logging

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """CortexBuild admin commands"""
    Base.metadata.create_all(bind=engine)


@cli.command('seed-plans')
def seed_plans():
    """Seed the plan catalog if it is empty"""
    db = SessionLocal()
    try:
        inserted = PlanCatalog().seed_plans_if_empty(db)
        if inserted:
            click.echo(f"✓ Seeded {inserted} plans")
        else:
            click.echo("✓ Plans already present")
    finally:
        db.close()


@cli.command()
@click.option('--user', 'user_id', required=True, help='User id')
@click.option('--company', 'company_id', required=True, help='Company id')
def usage(user_id, company_id):
    """Show plan and usage for a user"""
    db = SessionLocal()
    try:
        status = QuotaService().get_quota_status(db, user_id, company_id)
        if not status['plan_id']:
            click.echo(f"User {user_id} has no active subscription in {company_id}")
        else:
            click.echo(f"User {user_id} - plan: {status['plan_id']} ({status['plan_tier']}), period: {status['period']}")
        for metric, quota in status['quotas'].items():
            limit = 'unlimited' if quota['unlimited'] else quota['limit']
            click.echo(f"  - {metric}: {quota['used']}/{limit}")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('reset-usage')
@click.option('--user', 'user_id', required=True, help='User id')
@click.option('--company', 'company_id', required=True, help='Company id')
@click.option('--metric', type=click.Choice(list(METRICS)), required=False, help='Metric to reset. Defaults to all')
@click.option('--period', required=False, help='Period (YYYY-MM). Defaults to the current month')
@click.option('-y', '--yes', 'confirm', is_flag=True, help='Skip confirmation')
@click.option('--dry-run', 'dry_run', is_flag=True, help='Show what would be changed without committing')
def reset_usage(user_id, company_id, metric, period, confirm, dry_run):
    """Reset usage counters for a user (set counts to 0)"""
    if period:
        try:
            datetime.strptime(period, "%Y-%m")
        except ValueError:
            click.echo("❌ Invalid period format. Use YYYY-MM", err=True)
            return

    quotas = QuotaService()
    target_period = period or current_period()
    action_desc = f"reset {metric or 'all metrics'} for {user_id} in {target_period}"

    db = SessionLocal()
    try:
        if dry_run:
            click.echo(f"🔍 Dry run: would {action_desc}")
            usage = quotas.get_current_usage(db, user_id, company_id, period=target_period)
            metrics = [metric] if metric else list(METRICS)
            for name in metrics:
                click.echo(f"  - {name}: {usage[METRICS[name][1]]}")
            return

        if not confirm:
            try:
                if not click.confirm(f"Are you sure you want to {action_desc}?", default=False):
                    click.echo("Aborted")
                    return
            except click.exceptions.Abort:
                click.echo("\nAborted")
                return

        rows = quotas.reset_usage(db, user_id, company_id, period=target_period, metric=metric)
        click.echo(f"✓ Reset {rows} usage rows for {user_id}")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command('set-plan')
@click.option('--user', 'user_id', required=True, help='User id')
@click.option('--company', 'company_id', required=True, help='Company id')
@click.option('--plan', 'plan_id', required=True, help='Plan id, e.g. plan-pro-monthly')
@click.option('--reason', required=False, help='Reason recorded in subscription history')
def set_plan(user_id, company_id, plan_id, reason):
    """Move a user to another plan"""
    db = SessionLocal()
    try:
        subscription = SubscriptionService().change_plan(
            db, user_id, company_id, plan_id, changed_by='admin-cli', reason=reason or 'admin'
        )
        click.echo(f"✓ {user_id} is now on {subscription.plan_id} (subscription {subscription.id})")
    except ValueError as e:
        click.echo(f"❌ {e}", err=True)
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


@cli.command()
def expire():
    """Expire subscriptions canceled at period end whose period is over"""
    db = SessionLocal()
    try:
        count = SubscriptionService().expire_subscriptions(db)
        click.echo(f"✓ Expired {count} subscriptions")
    except Exception as e:
        logger.error(f"CLI error: {e}")
        click.echo(f"❌ Error: {e}", err=True)
    finally:
        db.close()


if __name__ == '__main__':
    cli()
