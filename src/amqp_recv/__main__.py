from amqp_recv.main import cli

cli()
