from mindsync.server import main

main()
