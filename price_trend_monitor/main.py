"""
Command-line entry point for the price trend monitor.
"""

import sys
import json
import argparse
from typing import Any, Dict, List, Optional, Tuple
from pathlib import Path
from datetime import date

from config import ConfigManager, SystemConfig, config_manager, get_config
from price_trend_monitor.analysis.analyzer import TrendAnalyzer
from price_trend_monitor.analysis.models import PredictionResult
from price_trend_monitor.data.repository import PriceRepository
from price_trend_monitor.data.sqlite_database import SQLiteDatabaseManager
from price_trend_monitor.services.prediction_service import PredictionService
from price_trend_monitor.services.prediction_report import format_prediction, prediction_to_dict
from price_trend_monitor.visualization.chart_generator import ChartGenerator
from price_trend_monitor.utils.errors import PriceTrendMonitorError, ProductNotFoundError
from price_trend_monitor.utils.logging import (
    setup_logging,
    get_logger,
    get_business_logger,
    get_log_statistics,
    cleanup_old_logs,
    log_business_operation
)


logger = get_logger(__name__)


class PriceTrendMonitorApp:
    """Application wiring: config, record store, analyzer and chart rendering."""

    def __init__(self, config_path: Optional[str] = None, config: Optional[SystemConfig] = None):
        """
        Args:
            config_path: Optional path to configuration file
            config: Ready configuration (skips loading from file)
        """
        self.config_path = config_path
        self.config_manager: Optional[ConfigManager] = None
        self.config: Optional[SystemConfig] = config

        self.db_manager: Optional[SQLiteDatabaseManager] = None
        self.repository: Optional[PriceRepository] = None
        self.prediction_service: Optional[PredictionService] = None
        self.chart_generator: Optional[ChartGenerator] = None

        self._initialized = False

    def load_configuration(self) -> SystemConfig:
        """Load configuration unless one was supplied."""
        if self.config is None:
            if self.config_path:
                self.config_manager = ConfigManager(self.config_path)
                self.config = self.config_manager.load_config()
            else:
                self.config_manager = config_manager
                self.config = get_config()
        return self.config

    def initialize(self) -> None:
        """Initialize all application components."""
        self.load_configuration()

        self.db_manager = SQLiteDatabaseManager(self.config.database.sqlite_path)
        self.db_manager.initialize()

        self.repository = PriceRepository(
            self.db_manager,
            unique_daily_prices=self.config.database.unique_daily_prices
        )
        self.prediction_service = PredictionService(self.repository, TrendAnalyzer())
        self.chart_generator = ChartGenerator(
            figure_size=(self.config.chart.width, self.config.chart.height),
            dpi=self.config.chart.dpi
        )

        self._initialized = True
        logger.debug("Application components initialized")

    def database_status(self) -> Dict[str, Any]:
        return self.db_manager.get_connection_stats()

    def add_product(self, owner_id: str, name: str, description: str = "") -> Dict[str, Any]:
        product = self.repository.create_product(owner_id, name, description)
        return {"id": product.id, "name": product.name, "description": product.description}

    def list_products(self, owner_id: str) -> List[Dict[str, Any]]:
        return [
            {
                "id": product.id,
                "name": product.name,
                "description": product.description,
                "created_at": product.created_at.isoformat(timespec='seconds')
            }
            for product in self.repository.get_products_by_owner(owner_id)
        ]

    def delete_product(self, product_id: int) -> Dict[str, Any]:
        return {"product_id": product_id, "deleted": self.repository.delete_product(product_id)}

    def add_price(self, product_id: int, price: str, entry_date: date,
                  notes: str = "") -> Dict[str, Any]:
        entry = self.repository.add_price_entry(product_id, price, entry_date, notes)
        return {
            "id": entry.id,
            "product_id": entry.product_id,
            "price": str(entry.price),
            "date": entry.date.isoformat(),
            "notes": entry.notes
        }

    def list_prices(self, product_id: int) -> List[Dict[str, Any]]:
        if self.repository.get_product(product_id) is None:
            raise ProductNotFoundError(
                f"Product {product_id} does not exist",
                {"product_id": product_id}
            )
        return [
            {
                "id": entry.id,
                "price": str(entry.price),
                "date": entry.date.isoformat(),
                "notes": entry.notes
            }
            for entry in self.repository.get_price_history(product_id, descending=True)
        ]

    def delete_price(self, entry_id: int) -> Dict[str, Any]:
        return {"entry_id": entry_id, "deleted": self.repository.delete_price_entry(entry_id)}

    @log_business_operation('prediction', 'predict')
    def predict(self, product_id: int) -> Tuple[str, Optional[PredictionResult]]:
        prediction = self.prediction_service.predict_for_product(product_id)
        product = self.repository.get_product(product_id)
        return product.name, prediction

    @log_business_operation('prediction', 'predict_all')
    def predict_all(self, owner_id: str) -> List[Tuple[int, str, Optional[PredictionResult]]]:
        names = {p.id: p.name for p in self.repository.get_products_by_owner(owner_id)}
        predictions = self.prediction_service.predict_for_owner(owner_id)
        return [
            (product_id, names.get(product_id, ""), prediction)
            for product_id, prediction in predictions.items()
        ]

    @log_business_operation('chart', 'generate_chart')
    def generate_chart(self, product_id: int, output_path: Optional[str] = None) -> Path:
        product = self.repository.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(
                f"Product {product_id} does not exist",
                {"product_id": product_id}
            )

        history = self.repository.get_price_history(product_id)
        prediction = self.prediction_service.analyzer.analyze(history)
        chart_bytes = self.chart_generator.generate_price_history_chart(
            product.name, history, prediction
        )

        if output_path is None:
            output_path = str(Path(self.config.chart.output_dir) / f"product_{product_id}.png")
        return self.chart_generator.save_chart(chart_bytes, output_path)

    def log_statistics(self) -> Dict[str, Any]:
        return get_log_statistics(self._logs_dir())

    def cleanup_logs(self, retention_days: Optional[int] = None) -> Dict[str, Any]:
        days = retention_days or self.config.log_retention_days
        return {"removed_files": cleanup_old_logs(self._logs_dir(), days)}

    def _logs_dir(self) -> Optional[Path]:
        if self.config and self.config.log_file:
            return Path(self.config.log_file).parent
        return None

    def stop(self) -> None:
        if self.db_manager:
            self.db_manager.close()


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def create_cli_parser() -> argparse.ArgumentParser:
    """Create command-line interface parser."""
    parser = argparse.ArgumentParser(
        prog='price-trend-monitor',
        description='Price Trend Monitor - track prices and forecast the next one',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db                         # Create the database
  %(prog)s product add "Coffee beans 1kg"  # Track a new product
  %(prog)s price add 1 18.50 --date 2024-03-01
  %(prog)s predict 1                       # Forecast for one product
  %(prog)s predict                         # Forecast for all your products
  %(prog)s chart 1 --output coffee.png     # Render price chart
        """
    )

    parser.add_argument('--config', '-c', type=str,
                        help='Path to configuration file (default: config.json)')
    parser.add_argument('--owner', type=str,
                        help='Owner id for product operations (default: from configuration)')
    parser.add_argument('--output', '-o', type=str, choices=['json', 'text'], default='text',
                        help='Output format (default: text)')
    parser.add_argument('--log-level', type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Override log level from configuration')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output (equivalent to --log-level DEBUG)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help='Create database tables and show status')

    product_parser = subparsers.add_parser('product', help='Manage tracked products')
    product_sub = product_parser.add_subparsers(dest='action', required=True)
    product_add = product_sub.add_parser('add', help='Create a product')
    product_add.add_argument('name', type=str)
    product_add.add_argument('--description', type=str, default='')
    product_sub.add_parser('list', help='List products')
    product_delete = product_sub.add_parser('delete', help='Delete a product and its prices')
    product_delete.add_argument('product_id', type=int)

    price_parser = subparsers.add_parser('price', help='Manage price history')
    price_sub = price_parser.add_subparsers(dest='action', required=True)
    price_add = price_sub.add_parser('add', help='Record a price')
    price_add.add_argument('product_id', type=int)
    price_add.add_argument('price', type=str)
    price_add.add_argument('--date', type=_parse_date, default=None,
                           help='Observation date YYYY-MM-DD (default: today)')
    price_add.add_argument('--notes', type=str, default='')
    price_list = price_sub.add_parser('list', help='List prices, newest first')
    price_list.add_argument('product_id', type=int)
    price_delete = price_sub.add_parser('delete', help='Delete a price entry')
    price_delete.add_argument('entry_id', type=int)

    predict_parser = subparsers.add_parser('predict', help='Forecast the next price')
    predict_parser.add_argument('product_id', type=int, nargs='?',
                                help='Product id (default: all products of the owner)')

    chart_parser = subparsers.add_parser('chart', help='Render a price history chart')
    chart_parser.add_argument('product_id', type=int)
    chart_parser.add_argument('--output', dest='chart_output', type=str,
                              help='PNG output path (default: <chart.output_dir>/product_<id>.png)')

    logs_parser = subparsers.add_parser('logs', help='Log file maintenance')
    logs_parser.add_argument('action', choices=['stats', 'cleanup'])
    logs_parser.add_argument('--days', type=int, default=None,
                             help='Retention days for cleanup (default: from configuration)')

    return parser


def format_output(data: Any, format_type: str) -> str:
    """Format output data according to specified format."""
    if format_type == 'json':
        return json.dumps(data, indent=2, default=str, ensure_ascii=False)

    if isinstance(data, dict):
        lines = []
        for key, value in data.items():
            if isinstance(value, dict):
                lines.append(f"{key}:")
                for sub_key, sub_value in value.items():
                    lines.append(f"  {sub_key}: {sub_value}")
            elif isinstance(value, list):
                lines.append(f"{key}: {', '.join(map(str, value))}")
            else:
                lines.append(f"{key}: {value}")
        return '\n'.join(lines)
    elif isinstance(data, list):
        if not data:
            return "(none)"
        return '\n\n'.join(format_output(item, format_type) for item in data)
    return str(data)


def handle_command(app: PriceTrendMonitorApp, args: argparse.Namespace) -> int:
    """Dispatch a parsed command and return exit code."""
    owner = args.owner or app.config.default_owner
    output = args.output

    if args.command == 'init-db':
        print(format_output(app.database_status(), output))

    elif args.command == 'product':
        if args.action == 'add':
            result = app.add_product(owner, args.name, args.description)
        elif args.action == 'list':
            result = app.list_products(owner)
        else:
            result = app.delete_product(args.product_id)
            if not result["deleted"]:
                print(format_output(result, output))
                return 1
        print(format_output(result, output))

    elif args.command == 'price':
        if args.action == 'add':
            result = app.add_price(args.product_id, args.price,
                                   args.date or date.today(), args.notes)
        elif args.action == 'list':
            result = app.list_prices(args.product_id)
        else:
            result = app.delete_price(args.entry_id)
            if not result["deleted"]:
                print(format_output(result, output))
                return 1
        print(format_output(result, output))

    elif args.command == 'predict':
        if args.product_id is not None:
            results = [(args.product_id, *app.predict(args.product_id))]
        else:
            results = app.predict_all(owner)

        if output == 'json':
            data = [prediction_to_dict(p, pid, name) for pid, name, p in results]
            print(format_output(data[0] if args.product_id is not None else data, output))
        elif results:
            print('\n\n'.join(format_prediction(p, name) for _, name, p in results))
        else:
            print("No products yet.")

    elif args.command == 'chart':
        path = app.generate_chart(args.product_id, args.chart_output)
        print(format_output({"chart": str(path)}, output))

    elif args.command == 'logs':
        if args.action == 'stats':
            print(format_output(app.log_statistics(), output))
        else:
            print(format_output(app.cleanup_logs(args.days), output))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with command-line interface."""
    parser = create_cli_parser()
    args = parser.parse_args(argv)

    app = None
    exit_code = 0

    try:
        app = PriceTrendMonitorApp(config_path=args.config)
        app.load_configuration()

        if args.verbose:
            log_level = 'DEBUG'
        else:
            log_level = args.log_level or app.config.log_level

        setup_logging(
            log_level=log_level,
            log_file=app.config.log_file,
            retention_days=app.config.log_retention_days
        )
        if app.config.log_file:
            get_business_logger('prediction', log_level, Path(app.config.log_file).parent)
            get_business_logger('chart', log_level, Path(app.config.log_file).parent)

        app.initialize()
        exit_code = handle_command(app, args)

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        exit_code = 0
    except PriceTrendMonitorError as e:
        logger.debug(f"Command failed: {e.message} {e.details}")
        print(format_output({'error': e.message, **e.details}, args.output), file=sys.stderr)
        exit_code = 1
    finally:
        if app:
            app.stop()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
